import logging
from itertools import product
from typing import List, Optional, Tuple

from tictactoe3d.backend.models import (
    BOARD_SIZE,
    Board,
    CellValue,
    Player,
    Position,
    Threat,
    WinningLine,
)

logger = logging.getLogger(__name__)

Line = Tuple[Position, ...]


def create_board() -> Board:
    """4x4x4の空ボードを作成（x, y, z）
    x: 横方向（0が左）
    y: 奥行き（0が手前）
    z: 高さ（0が最下段）
    """
    return tuple(
        tuple(tuple(None for z in range(BOARD_SIZE)) for y in range(BOARD_SIZE))
        for x in range(BOARD_SIZE)
    )


def cell_at(board: Board, position: Position) -> CellValue:
    return board[position.x][position.y][position.z]


def place_mark(board: Board, position: Position, player: Player) -> Board:
    """
    指定されたマスに player の印を書いた新しいボードを返す。
    元のボードは変更しない。
    """
    x, y, z = position.as_tuple()
    plane = board[x]
    row = plane[y]
    row = row[:z] + (player,) + row[z + 1 :]
    plane = plane[:y] + (row,) + plane[y + 1 :]
    return board[:x] + (plane,) + board[x + 1 :]


# ========== 勝ちライン生成 ==========
# 方向ごとのグループ。同じグループ内は層ごとに並べる
LINE_FAMILIES = (
    ((1, 0, 0),),
    ((0, 1, 0),),
    ((0, 0, 1),),
    ((1, 1, 0), (1, -1, 0)),
    ((1, 0, 1), (1, 0, -1)),
    ((0, 1, 1), (0, 1, -1)),
    ((1, 1, 1), (-1, 1, 1), (1, -1, 1), (1, 1, -1)),
)


def _trace(start: Tuple[int, int, int], step: Tuple[int, int, int]) -> Optional[Line]:
    x, y, z = start
    dx, dy, dz = step
    line: List[Position] = []
    for i in range(BOARD_SIZE):
        nx, ny, nz = x + dx * i, y + dy * i, z + dz * i
        if 0 <= nx < BOARD_SIZE and 0 <= ny < BOARD_SIZE and 0 <= nz < BOARD_SIZE:
            line.append(Position(x=nx, y=ny, z=nz))
        else:
            return None
    return tuple(line)


def generate_lines() -> Tuple[Line, ...]:
    """
    76本の勝ちラインを返す。
    順番: 行(x) → 列(y) → 柱(z) → XY面の斜め → XZ面の斜め → YZ面の斜め → 立体対角線
    この順番が同時に複数ライン成立したときの優先順になる。
    """
    lines: List[Line] = []
    for family in LINE_FAMILIES:
        # 全方向で動かない軸 = 層の軸
        fixed = [axis for axis in range(3) if all(d[axis] == 0 for d in family)]
        found = []
        for start in product(range(BOARD_SIZE), repeat=3):
            for index, step in enumerate(family):
                line = _trace(start, step)
                if line is not None:
                    layer = tuple(start[axis] for axis in fixed)
                    found.append(((layer, index), line))
        found.sort(key=lambda item: item[0])
        lines.extend(line for _, line in found)
    return tuple(lines)


LINES = generate_lines()


# ========== 判定 ==========
def check_winner(board: Board) -> Optional[WinningLine]:
    """
    LINES の順に調べ、4マスとも同じプレイヤーのラインがあれば最初の1本を返す。
    勝者がいなければ None。
    """
    for line in LINES:
        first = cell_at(board, line[0])
        if first is None:
            continue
        if all(cell_at(board, pos) == first for pos in line[1:]):
            logger.debug(
                "Player %s wins! coords=%s", first, [pos.as_tuple() for pos in line]
            )
            return WinningLine(positions=line, winner=first)
    return None


def detect_threats(board: Board) -> Tuple[Threat, ...]:
    """リーチ（同じプレイヤー3つ + 空き1つ）のラインを列挙"""
    threats: List[Threat] = []
    for line in LINES:
        x_count = 0
        o_count = 0
        empty_cell: Optional[Position] = None
        for pos in line:
            value = cell_at(board, pos)
            if value == "X":
                x_count += 1
            elif value == "O":
                o_count += 1
            else:
                empty_cell = pos

        if empty_cell is None:
            continue
        if x_count == 3 and o_count == 0:
            threats.append(Threat(player="X", line=line, empty_cell=empty_cell))
        elif o_count == 3 and x_count == 0:
            threats.append(Threat(player="O", line=line, empty_cell=empty_cell))
    return tuple(threats)


def is_board_full(board: Board) -> bool:
    """盤面がすべて埋まっているかを確認"""
    return all(cell is not None for plane in board for row in plane for cell in row)


def is_winning_position(
    winning_line: Optional[WinningLine], position: Position
) -> bool:
    if winning_line is None:
        return False
    return position in winning_line.positions


def is_threat_position(
    threats: Tuple[Threat, ...], position: Position, player: Optional[Player] = None
) -> Optional[Threat]:
    """position が空きマスになっている最初のリーチを返す（player 指定時はその人の分だけ）"""
    for threat in threats:
        if player is not None and threat.player != player:
            continue
        if threat.empty_cell == position:
            return threat
    return None


def get_total_winning_lines() -> int:
    return len(LINES)


# ========== 描画用の座標 ==========
def cell_world_position(
    position: Position, layer_spacing: float = 1.5, cell_spacing: float = 1.2
) -> Tuple[float, float, float]:
    """
    マス → 3D空間の座標。z（層）を縦軸にして、盤全体が原点中心になるようにずらす。
    戻り値は (横, 高さ, 奥行き)
    """
    offset = (BOARD_SIZE - 1) * cell_spacing / 2
    vertical_offset = (BOARD_SIZE - 1) * layer_spacing / 2
    return (
        position.x * cell_spacing - offset,
        position.z * layer_spacing - vertical_offset,
        position.y * cell_spacing - offset,
    )


def all_positions() -> List[Position]:
    return [Position(x=x, y=y, z=z) for x, y, z in product(range(BOARD_SIZE), repeat=3)]
