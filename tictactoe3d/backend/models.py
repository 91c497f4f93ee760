from datetime import datetime, timezone
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

BOARD_SIZE = 4

Player = Literal["X", "O"]
CellValue = Optional[Player]
GameStatus = Literal["playing", "win", "draw"]
MoveKind = Literal["move", "skip"]
SkipReason = Literal["timeout"]
PresetName = Literal["preset1", "preset2", "preset3"]

# board[x][y][z]（None=空, "X", "O"）
Board = Tuple[Tuple[Tuple[CellValue, ...], ...], ...]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Position(BaseModel):
    """盤上の1マス。x, y は層内の座標、z は層（高さ）"""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0, lt=BOARD_SIZE)
    y: int = Field(ge=0, lt=BOARD_SIZE)
    z: int = Field(ge=0, lt=BOARD_SIZE)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)


class WinningLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    positions: Tuple[Position, ...]
    winner: Player


class Threat(BaseModel):
    """3つ揃って残り1マスが空いているライン"""

    model_config = ConfigDict(frozen=True)

    player: Player
    line: Tuple[Position, ...]
    empty_cell: Position


class Move(BaseModel):
    """履歴の1手。skip（時間切れ）の場合は position なし"""

    model_config = ConfigDict(frozen=True)

    player: Player
    position: Optional[Position] = None
    timestamp: datetime = Field(default_factory=_now)
    kind: MoveKind = "move"
    reason: Optional[SkipReason] = None


class GameState(BaseModel):
    model_config = ConfigDict(frozen=True)

    board: Board
    current_player: Player = "X"
    status: GameStatus = "playing"
    winning_line: Optional[WinningLine] = None
    move_count: int = 0
    move_history: Tuple[Move, ...] = ()
    threats: Tuple[Threat, ...] = ()
    last_move_position: Optional[Position] = None


# ========== API 用モデル ==========
class NewGameOut(BaseModel):
    game_id: str
    state: GameState


class MoveResponse(BaseModel):
    result: Literal[
        "ok", "win", "draw", "invalid", "finished", "undone", "ignored", "skipped"
    ]
    state: GameState
    winner: Optional[Player] = None
    message: Optional[str] = None


class SkipIn(BaseModel):
    reason: Optional[SkipReason] = "timeout"


class CellLayout(BaseModel):
    position: Position
    world: Tuple[float, float, float]
