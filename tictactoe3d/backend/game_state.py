"""
ゲーム進行（着手・待った・時間切れスキップ・リプレイ）

どの関数も GameState を受け取って新しい GameState を返す。
何も変わらない場合（埋まっているマス、終局後、勝利後の待った等）は
受け取ったオブジェクトをそのまま返すので、呼び出し側は `is` で判定できる。
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from tictactoe3d.backend.game_logic import (
    cell_at,
    check_winner,
    create_board,
    detect_threats,
    is_board_full,
    place_mark,
)
from tictactoe3d.backend.models import (
    BOARD_SIZE,
    GameState,
    Move,
    Player,
    Position,
    PresetName,
    SkipReason,
)

logger = logging.getLogger(__name__)


def opponent(player: Player) -> Player:
    return "O" if player == "X" else "X"


def create_initial_state() -> GameState:
    return GameState(board=create_board())


def real_moves(history: Iterable[Move]) -> List[Move]:
    """実際に石を置いた手だけ（skip は除く）"""
    return [m for m in history if m.kind == "move" and m.position is not None]


def _apply(state: GameState, move: Move) -> GameState:
    # move.player をそのまま使う（リプレイでは記録どおりの手番にする）
    board = place_mark(state.board, move.position, move.player)
    winning_line = check_winner(board)

    if winning_line is not None:
        status = "win"
    elif is_board_full(board):
        status = "draw"
    else:
        status = "playing"

    return GameState(
        board=board,
        current_player=opponent(move.player),
        status=status,
        winning_line=winning_line,
        move_count=state.move_count + 1,
        move_history=state.move_history + (move,),
        threats=detect_threats(board) if status == "playing" else (),
        last_move_position=move.position,
    )


def make_move(state: GameState, position: Position) -> GameState:
    if state.status != "playing":
        logger.debug("move %s ignored: game is %s", position.as_tuple(), state.status)
        return state
    if cell_at(state.board, position) is not None:
        logger.debug("move %s ignored: cell occupied", position.as_tuple())
        return state

    new_state = _apply(state, Move(player=state.current_player, position=position))
    if new_state.status != "playing":
        logger.debug("game over: %s after %d moves", new_state.status, new_state.move_count)
    return new_state


def undo_move(state: GameState) -> GameState:
    """
    最後の1手を取り消す。盤面は残った履歴から作り直す。
    勝敗がついた後は取り消せない（引き分けは取り消せる）。
    """
    if not state.move_history:
        return state
    if state.status == "win":
        return state

    history = state.move_history[:-1]
    applied = real_moves(history)

    board = create_board()
    for move in applied:
        board = place_mark(board, move.position, move.player)

    last: Optional[Move] = applied[-1] if applied else None
    return GameState(
        board=board,
        current_player=opponent(last.player) if last else "X",
        status="playing",
        winning_line=None,
        move_count=len(applied),
        move_history=history,
        threats=detect_threats(board),
        last_move_position=last.position if last else None,
    )


def skip_turn(state: GameState, reason: Optional[SkipReason] = "timeout") -> GameState:
    """時間切れなどで手番を飛ばす。盤面と手数はそのまま"""
    if state.status != "playing":
        return state
    skip = Move(player=state.current_player, kind="skip", reason=reason)
    return state.model_copy(
        update={
            "current_player": opponent(state.current_player),
            "move_history": state.move_history + (skip,),
        }
    )


def replay_moves(history: Iterable[Move], count: int) -> GameState:
    """
    履歴のうち最初の count 手（skip を除く）を空の盤面から並べ直した状態を返す。
    count が手数より多ければ全部並べる。
    """
    if count < 0:
        raise ValueError(f"count must be >= 0: {count}")
    state = create_initial_state()
    for move in real_moves(history)[:count]:
        state = _apply(state, move)
    return state


def preset_state(
    winning_line: Sequence[Position],
    winner: Player,
    extra_moves: Sequence[Position] = (),
) -> GameState:
    """
    デモ用の決着済み盤面を作る。
    X から交互に、winner は winning_line の最初の3マス、相手は extra_moves を置き、
    最後に winner が winning_line の最後のマスを置いて勝つ。
    相手の手は winner の手数より1つ少なくなるよう切り詰める。埋まっているマスは飛ばす。
    """
    if len(winning_line) != BOARD_SIZE:
        raise ValueError(f"winning_line must have {BOARD_SIZE} cells")

    winner_moves = list(winning_line[:-1])
    loser_moves = list(extra_moves)[: len(winner_moves)]
    final = winning_line[-1]
    if final in winner_moves or final in loser_moves:
        raise ValueError(f"final cell {final.as_tuple()} is already used")

    state = create_initial_state()
    player: Player = "X"
    while winner_moves or loser_moves:
        queue = winner_moves if player == winner else loser_moves
        if queue:
            position = queue.pop(0)
            if cell_at(state.board, position) is not None:
                continue
            state = _apply(state, Move(player=player, position=position))
        # 置く手がなければ手番だけ渡す
        player = opponent(player)

    state = _apply(state, Move(player=winner, position=final))
    logger.debug("preset built: %s after %d moves", state.status, state.move_count)
    return state


def _line(*cells) -> Tuple[Position, ...]:
    return tuple(Position(x=x, y=y, z=z) for x, y, z in cells)


# 終局済みのデモ盤面（行・立体対角線・柱）
PRESETS = {
    "preset1": (
        _line((0, 0, 0), (1, 0, 0), (2, 0, 0), (3, 0, 0)),
        "X",
        _line((1, 1, 0), (2, 1, 0), (0, 1, 0)),
    ),
    "preset2": (
        _line((0, 0, 0), (1, 1, 1), (2, 2, 2), (3, 3, 3)),
        "O",
        _line((1, 0, 0), (2, 1, 1), (3, 2, 2)),
    ),
    "preset3": (
        _line((1, 1, 0), (1, 1, 1), (1, 1, 2), (1, 1, 3)),
        "X",
        _line((0, 1, 0), (2, 1, 1), (0, 1, 2)),
    ),
}


def create_preset_state(name: PresetName) -> GameState:
    winning_line, winner, extra_moves = PRESETS[name]
    return preset_state(winning_line, winner, extra_moves)
