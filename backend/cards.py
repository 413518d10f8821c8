"""Serra card rules: 40-card deck, trump hierarchy, trick resolution and scoring.

Everything here is pure. Room state lives in ``game.py``.
"""
from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

from models import Card, TrickPlay

SUITS = ["♠", "♥", "♦", "♣"]
RANKS = ["3", "4", "5", "6", "J", "Q", "K", "7", "A"]  # no 2, 8, 9, 10

SPADES = "♠"
DIAMONDS = "♦"
CLUBS = "♣"

BASE_RANK: Dict[str, int] = {rank: idx for idx, rank in enumerate(RANKS)}

CARD_POINTS: Dict[str, int] = {
    "7": 10,
    "A": 11,
    "K": 4,
    "Q": 3,
    "J": 2,
}

# special cards, weakest to strongest
DOURADO_RANK = 100      # A♦, only while clubs are trump
PE_DE_PINTO_RANK = 110  # A♣
ZANGAO_RANK = 120       # 3♣
DAMA_FINA_RANK = 130    # Q♠
ACE_RANK = 140

SEATS = 4


def make_deck() -> List[Card]:
    return [Card(rank=rank, suit=suit) for suit in SUITS for rank in RANKS]


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Shuffles in place. Returns the same list for chaining."""
    (rng or random).shuffle(cards)
    return cards


def card_points(card: Card) -> int:
    return CARD_POINTS.get(card.rank, 0)


def trick_points(cards: Sequence[Card], *, last_trick: bool = False, bonus: int = 0) -> int:
    base = sum(card_points(card) for card in cards)
    return base + bonus if last_trick else base


def _is_dourado(card: Card, trump_suit: Optional[str]) -> bool:
    return trump_suit == CLUBS and card.rank == "A" and card.suit == DIAMONDS


def is_universal_trump(card: Card, trump_suit: Optional[str]) -> bool:
    if card.rank == "Q" and card.suit == SPADES:  # dama fina
        return True
    if card.rank == "3" and card.suit == CLUBS:  # zangão
        return True
    if card.rank == "A" and card.suit == CLUBS:  # pé de pinto
        return True
    return _is_dourado(card, trump_suit)


def is_trump(card: Card, trump_suit: Optional[str]) -> bool:
    return card.suit == trump_suit or is_universal_trump(card, trump_suit)


def is_bisca(card: Card, trump_suit: Optional[str]) -> bool:
    return card.rank in ("A", "7") and card.suit != trump_suit


def strength_rank(card: Card, trump_suit: Optional[str]) -> int:
    if _is_dourado(card, trump_suit):
        return DOURADO_RANK
    if card.rank == "A" and card.suit == CLUBS:
        return PE_DE_PINTO_RANK
    if card.rank == "3" and card.suit == CLUBS:
        return ZANGAO_RANK
    if card.rank == "Q" and card.suit == SPADES:
        return DAMA_FINA_RANK
    if card.rank == "A":
        return ACE_RANK
    return BASE_RANK[card.rank]


def trick_winner(trick: Sequence[TrickPlay], trump_suit: Optional[str]) -> int:
    """Seat that takes the trick.

    Trumps (printed or universal) form the pool when any were played,
    otherwise only cards of the lead suit compete. Earlier plays win ties.
    """
    if not trick:
        raise ValueError("Empty trick")
    lead_suit = trick[0].card.suit
    trumps = [play for play in trick if is_trump(play.card, trump_suit)]
    pool = trumps or [play for play in trick if play.card.suit == lead_suit]
    best = pool[0]
    for play in pool[1:]:
        if strength_rank(play.card, trump_suit) > strength_rank(best.card, trump_suit):
            best = play
    return best.seat


def weakest_card(hand: Sequence[Card], trump_suit: Optional[str]) -> Optional[Card]:
    if not hand:
        return None
    best = hand[0]
    for card in hand[1:]:
        if strength_rank(card, trump_suit) < strength_rank(best, trump_suit):
            best = card
    return best


def team_of_seat(seat: int) -> int:
    return seat % 2


def next_seat(seat: int) -> int:
    return (seat + 1) % SEATS


# ----------------------------------------------------------------------
# Trump exchange
# ----------------------------------------------------------------------
def _swap_key(trump_suit: str) -> Tuple[str, str]:
    if trump_suit == CLUBS:
        return "4", CLUBS
    return "3", trump_suit


def can_swap_trump(face_up: Optional[Card], trump_suit: Optional[str], hand: Sequence[Card]) -> bool:
    if face_up is None or trump_suit is None:
        return False
    rank, suit = _swap_key(trump_suit)
    return any(card.rank == rank and card.suit == suit for card in hand)


def swap_trump(
    face_up: Optional[Card], trump_suit: Optional[str], hand: Sequence[Card]
) -> Optional[Tuple[Card, List[Card]]]:
    """Trade the qualifying low trump for the face-up card.

    Returns ``(new_face_up, new_hand)`` or ``None`` when the hand does not
    qualify. The input hand is left untouched.
    """
    if not can_swap_trump(face_up, trump_suit, hand):
        return None
    rank, suit = _swap_key(trump_suit)
    new_hand = list(hand)
    idx = next(i for i, card in enumerate(new_hand) if card.rank == rank and card.suit == suit)
    exchanged = new_hand[idx]
    new_hand[idx] = face_up
    return exchanged, new_hand
