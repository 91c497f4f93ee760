# main.py (FastAPI) 4x4x4 三目並べ（立体四目）サーバー
import logging
import threading
import uuid
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from tictactoe3d.backend.game_logic import (
    LINES,
    all_positions,
    cell_world_position,
    get_total_winning_lines,
)
from tictactoe3d.backend.game_state import (
    create_initial_state,
    create_preset_state,
    make_move,
    replay_moves,
    skip_turn,
    undo_move,
)
from tictactoe3d.backend.models import (
    CellLayout,
    GameState,
    MoveResponse,
    NewGameOut,
    Position,
    PresetName,
    SkipIn,
    SkipReason,
)
from tictactoe3d.main_server.preferences import router as preferences_router

# ========== ログ ==========
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# ========== FastAPI ==========
app = FastAPI()

# CORS（描画側はブラウザから叩く）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 設定（持ち時間・タイマーON/OFF）
app.include_router(preferences_router)


# ========== ゲーム箱 ==========
class Game:
    """
    1ゲーム分の状態を持つ箱。状態の更新はすべて backend.game_state 経由。
    同期エンドポイントはスレッドプールで動くので、読む→遷移→書くはロックの中で行う。
    """

    def __init__(self, state: Optional[GameState] = None):
        self._lock = threading.Lock()
        self.state = state if state is not None else create_initial_state()

    def make_move(self, position: Position) -> MoveResponse:
        with self._lock:
            if self.state.status != "playing":
                return MoveResponse(result="finished", state=self.state)

            new_state = make_move(self.state, position)
            if new_state is self.state:
                return MoveResponse(
                    result="invalid",
                    state=self.state,
                    message=f"{position.as_tuple()} は既に埋まっています",
                )
            self.state = new_state

        if new_state.status == "win":
            winner = new_state.winning_line.winner
            return MoveResponse(
                result="win",
                state=new_state,
                winner=winner,
                message=f"Player {winner} wins",
            )
        if new_state.status == "draw":
            return MoveResponse(result="draw", state=new_state)
        return MoveResponse(result="ok", state=new_state)

    def undo(self) -> MoveResponse:
        with self._lock:
            new_state = undo_move(self.state)
            if new_state is self.state:
                return MoveResponse(result="ignored", state=self.state)
            self.state = new_state
        return MoveResponse(result="undone", state=new_state)

    def skip(self, reason: Optional[SkipReason]) -> MoveResponse:
        with self._lock:
            new_state = skip_turn(self.state, reason)
            if new_state is self.state:
                return MoveResponse(result="finished", state=self.state)
            self.state = new_state
        return MoveResponse(result="skipped", state=new_state)

    def reset(self) -> GameState:
        with self._lock:
            self.state = create_initial_state()
            return self.state


# ========== ゲームレジストリ ==========
games: Dict[str, Game] = {}


def _get_game(game_id: str) -> Game:
    game = games.get(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Invalid game_id")
    return game


# ========== エンドポイント ==========
@app.post("/games", response_model=NewGameOut)
def create_game(preset: Optional[PresetName] = Query(None)):
    """preset を指定すると決着済みのデモ盤面から始める"""
    game_id = str(uuid.uuid4())
    state = create_preset_state(preset) if preset else None
    games[game_id] = Game(state)
    logger.info("game created: %s (preset=%s)", game_id, preset)
    return NewGameOut(game_id=game_id, state=games[game_id].state)


@app.get("/games/{game_id}", response_model=GameState)
def get_state(game_id: str):
    return _get_game(game_id).state


@app.post("/games/{game_id}/move", response_model=MoveResponse)
def move(game_id: str, payload: Position):
    out = _get_game(game_id).make_move(payload)
    if out.result in ("win", "draw"):
        logger.info("game %s finished: %s", game_id, out.result)
    return out


@app.post("/games/{game_id}/undo", response_model=MoveResponse)
def undo(game_id: str):
    return _get_game(game_id).undo()


@app.post("/games/{game_id}/skip", response_model=MoveResponse)
def skip(game_id: str, body: Optional[SkipIn] = None):
    reason = body.reason if body else "timeout"
    return _get_game(game_id).skip(reason)


@app.post("/games/{game_id}/reset", response_model=GameState)
def reset(game_id: str):
    return _get_game(game_id).reset()


@app.get("/games/{game_id}/replay", response_model=GameState)
def replay(game_id: str, moves: int = Query(ge=0)):
    """履歴の最初の moves 手だけ並べた盤面（リプレイ表示用）"""
    game = _get_game(game_id)
    return replay_moves(game.state.move_history, moves)


@app.delete("/games/{game_id}")
def delete_game(game_id: str):
    if game_id in games:
        del games[game_id]
        return {"status": "deleted"}
    raise HTTPException(status_code=404, detail="Invalid game_id")


@app.get("/lines")
def list_lines():
    return {
        "total": get_total_winning_lines(),
        "lines": [[pos.as_tuple() for pos in line] for line in LINES],
    }


@app.get("/layout", response_model=list[CellLayout])
def layout(
    layer_spacing: float = Query(1.5, gt=0),
    cell_spacing: float = Query(1.2, gt=0),
):
    return [
        CellLayout(
            position=pos,
            world=cell_world_position(pos, layer_spacing, cell_spacing),
        )
        for pos in all_positions()
    ]
