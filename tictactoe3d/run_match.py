# run_match.py
# サーバーに対して手を順番に送るクライアント。時間切れタイマーとリプレイ再生もここから叩く
import logging
import os
import time

import requests  # type: ignore

logger = logging.getLogger(__name__)

BASE = os.environ.get("TICTACTOE3D_SERVER", "http://127.0.0.1:8000")

# 例: X が x 軸方向に4つ並べて勝つ
DEMO_MOVES = [
    (0, 0, 0),
    (0, 1, 0),
    (1, 0, 0),
    (1, 1, 0),
    (2, 0, 0),
    (0, 3, 3),
    (3, 0, 0),
]


def new_game(http=requests, base=BASE) -> str:
    r = http.post(f"{base}/games")
    r.raise_for_status()
    return r.json()["game_id"]


def get_state(game_id, http=requests, base=BASE):
    r = http.get(f"{base}/games/{game_id}")
    r.raise_for_status()
    return r.json()


def make_move(game_id, x, y, z, http=requests, base=BASE):
    r = http.post(f"{base}/games/{game_id}/move", json={"x": x, "y": y, "z": z})
    r.raise_for_status()
    return r.json()


def undo(game_id, http=requests, base=BASE):
    r = http.post(f"{base}/games/{game_id}/undo")
    r.raise_for_status()
    return r.json()


def skip(game_id, reason="timeout", http=requests, base=BASE):
    r = http.post(f"{base}/games/{game_id}/skip", json={"reason": reason})
    r.raise_for_status()
    return r.json()


def replay(game_id, moves, http=requests, base=BASE):
    r = http.get(f"{base}/games/{game_id}/replay", params={"moves": moves})
    r.raise_for_status()
    return r.json()


def get_preferences(http=requests, base=BASE):
    r = http.get(f"{base}/preferences")
    r.raise_for_status()
    return r.json()


def expire_turn(game_id, http=requests, base=BASE):
    """
    持ち時間切れのときにタイマーから呼ぶ。
    設定でタイマーが無効なら何もしないで None を返す。
    """
    prefs = get_preferences(http=http, base=base)
    if not prefs["timer_enabled"]:
        return None
    out = skip(game_id, http=http, base=base)
    logger.info("[timer] %s: turn skipped (%s)", game_id, out["result"])
    return out


def run_match(moves, http=requests, base=BASE, delay=0.05):
    """moves を順番に送り、終局したらそこで止める。最後の応答を返す"""
    game_id = new_game(http=http, base=base)
    result = {"result": "ok", "state": get_state(game_id, http=http, base=base)}

    for x, y, z in moves:
        player = result["state"]["current_player"]
        result = make_move(game_id, x, y, z, http=http, base=base)
        logger.info("Player %s -> (%d, %d, %d): %s", player, x, y, z, result["result"])

        if result["result"] in ["win", "draw", "finished"]:
            break
        if delay:
            time.sleep(delay)  # ログ見やすく

    result["game_id"] = game_id
    return result


def replay_match(game_id, http=requests, base=BASE, interval=0.5):
    """0手目から最終手まで順番にリプレイ盤面を取得する（自動再生）"""
    state = get_state(game_id, http=http, base=base)
    frames = []
    for k in range(state["move_count"] + 1):
        frames.append(replay(game_id, k, http=http, base=base))
        if interval:
            time.sleep(interval)
    return frames


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    final = run_match(DEMO_MOVES)
    print("Game Over:", final["result"], final.get("winner"))
