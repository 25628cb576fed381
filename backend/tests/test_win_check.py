"""
Tests for win line detection.
"""
import pytest

from tictactoe.game import check_for_win, winning_lines


def board_with(cells: dict[int, int], size: int = 3) -> list[list[int | None]]:
    board = [[None] * size for _ in range(size)]
    for cell, owner in cells.items():
        board[cell // size][cell % size] = owner
    return board


ALL_LINES = [
    [0, 1, 2], [3, 4, 5], [6, 7, 8],
    [0, 3, 6], [1, 4, 7], [2, 5, 8],
    [0, 4, 8], [6, 4, 2],
]


def test_lines_are_listed_in_scan_order():
    assert winning_lines(3) == ALL_LINES


@pytest.mark.parametrize("line", ALL_LINES)
@pytest.mark.parametrize("owner", [0, 1])
def test_every_line_is_detected(line, owner):
    assert check_for_win(board_with({c: owner for c in line})) == line


def test_empty_board_has_no_winner():
    assert check_for_win(board_with({})) is None


def test_mixed_line_is_not_a_win():
    assert check_for_win(board_with({0: 0, 1: 0, 2: 1})) is None


def test_full_board_without_line():
    # X O X / X O O / O X X
    marks = {0: 0, 1: 1, 2: 0, 3: 0, 4: 1, 5: 1, 6: 1, 7: 0, 8: 0}
    assert check_for_win(board_with(marks)) is None


def test_rows_win_over_columns_when_both_complete():
    marks = {0: 0, 1: 0, 2: 0, 3: 0, 6: 0}
    assert check_for_win(board_with(marks)) == [0, 1, 2]


def test_columns_win_over_diagonals():
    marks = {0: 1, 3: 1, 6: 1, 4: 1, 8: 1}
    assert check_for_win(board_with(marks)) == [0, 3, 6]
