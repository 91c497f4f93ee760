from itertools import product

from tictactoe3d.backend.game_state import create_initial_state, make_move
from tictactoe3d.backend.models import Position

# X/O の塗り分けで、どのラインにも両方の印が入る盤面（32対32の引き分け）
_A = (0, 0, 1, 1)
_B = (0, 1, 0, 1)
_C = (0, 0, 0, 1)


def pos(x, y, z):
    return Position(x=x, y=y, z=z)


def drawn_owner(x, y, z):
    return "X" if _A[x] ^ _B[y] ^ _C[z] else "O"


def drawn_cells():
    xs, os_ = [], []
    for x, y, z in product(range(4), repeat=3):
        (xs if drawn_owner(x, y, z) == "X" else os_).append(pos(x, y, z))
    return xs, os_


def interleave(xs, os_):
    """X, O, X, O ... の順に並べる（X が1つ多くてもよい）"""
    out = []
    for i, p in enumerate(xs):
        out.append(p)
        if i < len(os_):
            out.append(os_[i])
    return out


def play(*coords, state=None):
    if state is None:
        state = create_initial_state()
    for c in coords:
        state = make_move(state, c if isinstance(c, Position) else pos(*c))
    return state
