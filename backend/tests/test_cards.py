import random
from collections import Counter

import pytest

from cards import (
    ACE_RANK,
    DAMA_FINA_RANK,
    DOURADO_RANK,
    PE_DE_PINTO_RANK,
    ZANGAO_RANK,
    can_swap_trump,
    card_points,
    is_bisca,
    is_trump,
    is_universal_trump,
    make_deck,
    next_seat,
    shuffle,
    strength_rank,
    swap_trump,
    team_of_seat,
    trick_points,
    trick_winner,
    weakest_card,
)
from models import Card, TrickPlay


def c(code: str) -> Card:
    return Card(rank=code[:-1], suit=code[-1])


def trick(*plays):
    return [TrickPlay(seat=seat, card=c(code)) for seat, code in plays]


def test_deck_has_forty_unique_cards():
    deck = make_deck()
    assert len(deck) == 40
    assert len({card.id for card in deck}) == 40
    assert not any(card.rank in ("2", "8", "9", "10") for card in deck)
    assert Counter(card.suit for card in deck) == {"♠": 10, "♥": 10, "♦": 10, "♣": 10}


def test_card_id_and_color_defaults():
    card = c("A♦")
    assert card.id == "A♦"
    assert card.color == "red"
    assert c("Q♠").color == "black"


def test_shuffle_is_permutation_in_place():
    deck = make_deck()
    same = shuffle(deck, random.Random(7))
    assert same is deck
    assert sorted(card.id for card in deck) == sorted(card.id for card in make_deck())


def test_card_points():
    assert [card_points(c(x)) for x in ("7♥", "A♥", "K♥", "Q♥", "J♥", "6♥", "3♥")] == [10, 11, 4, 3, 2, 0, 0]
    assert sum(card_points(card) for card in make_deck()) == 120


def test_trick_points_bonus_only_on_last_trick():
    cards = [c("A♥"), c("7♥"), c("3♥"), c("K♠")]
    assert trick_points(cards) == 25
    assert trick_points(cards, bonus=1) == 25
    assert trick_points(cards, last_trick=True, bonus=1) == 26


def test_universal_trumps():
    assert is_universal_trump(c("Q♠"), "♥")
    assert is_universal_trump(c("3♣"), "♥")
    assert is_universal_trump(c("A♣"), "♥")
    assert not is_universal_trump(c("A♦"), "♥")
    assert is_universal_trump(c("A♦"), "♣")
    assert is_trump(c("5♥"), "♥")
    assert is_trump(c("Q♠"), "♦")
    assert not is_trump(c("5♦"), "♥")


def test_strength_order_of_special_cards():
    trump = "♣"
    ordered = ["3♥", "4♥", "5♥", "6♥", "J♥", "Q♥", "K♥", "7♥", "A♦", "A♣", "3♣", "Q♠", "A♥"]
    ranks = [strength_rank(c(x), trump) for x in ordered]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ranks)
    assert strength_rank(c("A♦"), trump) == DOURADO_RANK
    assert strength_rank(c("A♣"), trump) == PE_DE_PINTO_RANK
    assert strength_rank(c("3♣"), trump) == ZANGAO_RANK
    assert strength_rank(c("Q♠"), trump) == DAMA_FINA_RANK
    assert strength_rank(c("A♥"), trump) == ACE_RANK


def test_dourado_is_plain_ace_outside_clubs():
    assert strength_rank(c("A♦"), "♥") == ACE_RANK


def test_trump_beats_lead_suit():
    plays = trick((0, "5♣"), (1, "K♠"), (2, "3♠"), (3, "7♣"))
    assert trick_winner(plays, "♠") == 1


def test_lead_suit_wins_without_trumps():
    plays = trick((0, "5♥"), (1, "7♦"), (2, "K♥"), (3, "A♦"))
    assert trick_winner(plays, "♠") == 2


def test_universal_trump_wins_off_suit():
    plays = trick((0, "A♥"), (1, "7♥"), (2, "3♣"), (3, "K♥"))
    assert trick_winner(plays, "♦") == 2


def test_dourado_loses_to_pe_de_pinto():
    plays = trick((0, "A♦"), (1, "A♣"), (2, "7♣"), (3, "K♣"))
    assert trick_winner(plays, "♣") == 1


def test_off_suit_cards_cannot_win():
    plays = trick((0, "3♥"), (1, "A♠"), (2, "7♦"), (3, "4♥"))
    assert trick_winner(plays, "♣") == 3
    plays = trick((0, "4♦"), (1, "3♥"), (2, "5♠"), (3, "3♦"))
    assert trick_winner(plays, "♥") == 1


def test_trick_winner_rejects_empty():
    with pytest.raises(ValueError):
        trick_winner([], "♠")


def test_weakest_card():
    hand = [c("A♥"), c("4♠"), c("3♦"), c("Q♠")]
    assert weakest_card(hand, "♥").id == "3♦"
    assert weakest_card([], "♥") is None


def test_seats_and_teams():
    assert [team_of_seat(s) for s in range(4)] == [0, 1, 0, 1]
    assert [next_seat(s) for s in range(4)] == [1, 2, 3, 0]


def test_bisca():
    assert is_bisca(c("A♥"), "♠")
    assert is_bisca(c("7♦"), "♠")
    assert not is_bisca(c("7♠"), "♠")
    assert not is_bisca(c("K♦"), "♠")


def test_swap_trump_with_three_of_trump():
    hand = [c("3♥"), c("K♠")]
    assert can_swap_trump(c("A♥"), "♥", hand)
    new_face_up, new_hand = swap_trump(c("A♥"), "♥", hand)
    assert new_face_up.id == "3♥"
    assert [card.id for card in new_hand] == ["A♥", "K♠"]
    assert [card.id for card in hand] == ["3♥", "K♠"]


def test_swap_trump_uses_four_when_clubs():
    hand = [c("3♣"), c("4♣")]
    new_face_up, new_hand = swap_trump(c("7♣"), "♣", hand)
    assert new_face_up.id == "4♣"
    assert {card.id for card in new_hand} == {"3♣", "7♣"}


def test_swap_trump_needs_face_up_and_card():
    assert not can_swap_trump(None, "♥", [c("3♥")])
    assert swap_trump(c("A♥"), "♥", [c("4♥")]) is None


def test_shuffle_follows_seeded_rng():
    expected = make_deck()
    random.Random(11).shuffle(expected)
    assert [card.id for card in shuffle(make_deck(), random.Random(11))] == [card.id for card in expected]
