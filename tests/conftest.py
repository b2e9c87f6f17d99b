import pytest

from builders import make_game, make_player


@pytest.fixture
def player():
    return make_player()


@pytest.fixture
def game():
    # BOS at home vs ORL (no rivalry)
    return make_game()
