from collections import Counter

import pytest
from pydantic import ValidationError

from tictactoe3d.backend.game_logic import (
    LINES,
    all_positions,
    cell_at,
    cell_world_position,
    check_winner,
    create_board,
    detect_threats,
    generate_lines,
    get_total_winning_lines,
    is_board_full,
    is_threat_position,
    is_winning_position,
    place_mark,
)
from tictactoe3d.backend.models import Threat, WinningLine

from tests.helpers import drawn_owner, pos


def board_with(marks):
    board = create_board()
    for (x, y, z), player in marks.items():
        board = place_mark(board, pos(x, y, z), player)
    return board


def test_line_count():
    assert len(LINES) == 76
    assert get_total_winning_lines() == 76


def test_lines_are_four_distinct_cells_without_duplicates():
    seen = set()
    for line in LINES:
        assert len(line) == 4
        assert len(set(line)) == 4
        key = frozenset(p.as_tuple() for p in line)
        assert key not in seen
        seen.add(key)


def test_cells_per_line_count():
    # 角と中心の16マスは7本、残り48マスは4本
    counter = Counter(p.as_tuple() for line in LINES for p in line)
    assert len(counter) == 64
    assert sorted(Counter(counter.values()).items()) == [(4, 48), (7, 16)]
    assert counter[(0, 0, 0)] == 7
    assert counter[(1, 1, 1)] == 7
    assert counter[(1, 0, 0)] == 4


def test_generation_order():
    as_tuples = [[p.as_tuple() for p in line] for line in LINES]
    assert as_tuples[0] == [(0, 0, 0), (1, 0, 0), (2, 0, 0), (3, 0, 0)]
    assert as_tuples[1] == [(0, 0, 1), (1, 0, 1), (2, 0, 1), (3, 0, 1)]
    assert as_tuples[16] == [(0, 0, 0), (0, 1, 0), (0, 2, 0), (0, 3, 0)]
    assert as_tuples[32] == [(0, 0, 0), (0, 0, 1), (0, 0, 2), (0, 0, 3)]
    # XY面の斜めは層ごとに 主対角 → 反対角
    assert as_tuples[48] == [(0, 0, 0), (1, 1, 0), (2, 2, 0), (3, 3, 0)]
    assert as_tuples[49] == [(0, 3, 0), (1, 2, 0), (2, 1, 0), (3, 0, 0)]
    assert as_tuples[50] == [(0, 0, 1), (1, 1, 1), (2, 2, 1), (3, 3, 1)]
    assert as_tuples[72:] == [
        [(0, 0, 0), (1, 1, 1), (2, 2, 2), (3, 3, 3)],
        [(3, 0, 0), (2, 1, 1), (1, 2, 2), (0, 3, 3)],
        [(0, 3, 0), (1, 2, 1), (2, 1, 2), (3, 0, 3)],
        [(0, 0, 3), (1, 1, 2), (2, 2, 1), (3, 3, 0)],
    ]


def test_generate_lines_is_stable():
    assert generate_lines() == LINES


def test_position_out_of_range():
    with pytest.raises(ValidationError):
        pos(4, 0, 0)
    with pytest.raises(ValidationError):
        pos(0, -1, 0)


def test_place_mark_does_not_touch_original():
    board = create_board()
    placed = place_mark(board, pos(1, 2, 3), "O")
    assert cell_at(board, pos(1, 2, 3)) is None
    assert cell_at(placed, pos(1, 2, 3)) == "O"
    assert sum(cell is not None for plane in placed for row in plane for cell in row) == 1


def test_check_winner_empty_board():
    assert check_winner(create_board()) is None


def test_check_winner_space_diagonal():
    board = board_with({(i, i, 3 - i): "O" for i in range(4)})
    line = check_winner(board)
    assert line == WinningLine(positions=LINES[75], winner="O")


def test_check_winner_three_is_not_enough():
    board = board_with({(0, 0, 0): "X", (1, 0, 0): "X", (2, 0, 0): "X", (3, 0, 0): "O"})
    assert check_winner(board) is None


def test_check_winner_returns_first_line_in_generation_order():
    # (0,0,0) を含む行と列が同時に揃っている → 行が先
    marks = {(i, 0, 0): "X" for i in range(4)}
    marks.update({(0, i, 0): "X" for i in range(4)})
    line = check_winner(board_with(marks))
    assert [p.as_tuple() for p in line.positions] == [(i, 0, 0) for i in range(4)]
    assert line.winner == "X"


def test_detect_threats_three_in_a_row():
    board = board_with({(0, 0, 0): "X", (1, 0, 0): "X", (2, 0, 0): "X", (0, 1, 0): "O", (1, 1, 0): "O"})
    threats = detect_threats(board)
    assert len(threats) == 1
    assert threats[0].player == "X"
    assert threats[0].empty_cell == pos(3, 0, 0)
    assert threats[0].line == LINES[0]


def test_detect_threats_blocked_or_full_lines():
    blocked = board_with({(0, 0, 0): "O", (0, 0, 1): "O", (0, 0, 2): "O", (0, 0, 3): "X"})
    assert detect_threats(blocked) == ()
    full = board_with({(0, 0, i): "O" for i in range(4)})
    assert detect_threats(full) == ()


def test_detect_threats_for_both_players():
    board = board_with(
        {
            (0, 0, 0): "X", (0, 0, 1): "X", (0, 0, 2): "X",
            (3, 3, 1): "O", (3, 3, 2): "O", (3, 3, 3): "O",
        }
    )
    threats = detect_threats(board)
    assert {(t.player, t.empty_cell.as_tuple()) for t in threats} == {
        ("X", (0, 0, 3)),
        ("O", (3, 3, 0)),
    }


def test_is_board_full():
    assert not is_board_full(create_board())
    marks = {p.as_tuple(): drawn_owner(*p.as_tuple()) for p in all_positions()}
    full = board_with(marks)
    assert is_board_full(full)
    # どのラインも X と O が混ざっている
    assert check_winner(full) is None
    assert detect_threats(full) == ()
    del marks[(2, 1, 3)]
    assert not is_board_full(board_with(marks))


def test_is_winning_position():
    line = WinningLine(positions=LINES[32], winner="X")
    assert is_winning_position(line, pos(0, 0, 2))
    assert not is_winning_position(line, pos(0, 1, 2))
    assert not is_winning_position(None, pos(0, 0, 2))


def test_is_threat_position_with_player_filter():
    threats = (
        Threat(player="X", line=LINES[0], empty_cell=pos(3, 0, 0)),
        Threat(player="O", line=LINES[16], empty_cell=pos(0, 3, 0)),
    )
    assert is_threat_position(threats, pos(3, 0, 0)) == threats[0]
    assert is_threat_position(threats, pos(3, 0, 0), "O") is None
    assert is_threat_position(threats, pos(0, 3, 0), "O") == threats[1]
    assert is_threat_position(threats, pos(1, 1, 1)) is None
    assert is_threat_position((), pos(3, 0, 0)) is None


def test_cell_world_position():
    assert cell_world_position(pos(0, 0, 0)) == pytest.approx((-1.8, -2.25, -1.8))
    assert cell_world_position(pos(3, 2, 1)) == pytest.approx((1.8, -0.75, 0.6))
    assert cell_world_position(pos(3, 3, 3), layer_spacing=2.0, cell_spacing=1.0) == pytest.approx(
        (1.5, 3.0, 1.5)
    )


def test_all_positions():
    positions = all_positions()
    assert len(positions) == 64
    assert len(set(positions)) == 64
