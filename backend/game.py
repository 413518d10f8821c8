from __future__ import annotations

import logging
import random
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from app.settings import Settings, get_settings
from cards import (
    SEATS,
    can_swap_trump,
    make_deck,
    next_seat,
    shuffle,
    swap_trump,
    team_of_seat,
    trick_points,
    trick_winner,
    weakest_card,
)
from errors import (
    CardNotInHand,
    EmptyMessage,
    NotInRoom,
    NotPlayingPhase,
    NotYourTurn,
    RoomCodesExhausted,
    RoomFull,
    RoomNotFound,
    SwapNotAllowed,
)
from models import (
    Card,
    ChatEntry,
    LastTrick,
    Phase,
    RoomState,
    RoomSummary,
    SeatView,
    TrickPlay,
)

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"  # no 0/O, 1/I/L
CODE_LENGTH = 5
MAX_CODE_ATTEMPTS = 1000
MAX_NAME_LENGTH = 24


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


class Room:
    def __init__(self, code: str, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.code = code
        self.settings = settings or get_settings()
        self.rng = rng
        self.created_at = now_ms()

        self.seats: List[Optional[str]] = [None] * SEATS
        self.names: List[str] = [""] * SEATS
        self.ready: List[bool] = [False] * SEATS
        self.phase: Phase = "lobby"

        self.stock: List[Card] = []
        self.face_up: Optional[Card] = None
        self.trump_suit: Optional[str] = None
        self.hands: List[List[Card]] = [[] for _ in range(SEATS)]
        self.won: List[List[Card]] = [[], []]

        self.trick: List[TrickPlay] = []
        self.last_trick: Optional[LastTrick] = None
        self.leader_seat: int = 0
        self.turn_seat: int = 0
        self.turn_deadline: Optional[int] = None
        self.tricks_played: int = 0
        self.team_score: List[int] = [0, 0]

        self.chat: Deque[ChatEntry] = deque(maxlen=self.settings.chat_history)
        # auto_play holds this while mid-play; it only blocks anything once a
        # suspension point is added between validation and commit
        self.busy = False

    # ------------------------------------------------------------------
    # Seats
    # ------------------------------------------------------------------
    def seat_of(self, conn_id: str) -> Optional[int]:
        for seat, occupant in enumerate(self.seats):
            if occupant is not None and occupant == conn_id:
                return seat
        return None

    def require_seat(self, conn_id: str) -> int:
        seat = self.seat_of(conn_id)
        if seat is None:
            raise NotInRoom()
        return seat

    def is_empty(self) -> bool:
        return all(occupant is None for occupant in self.seats)

    def occupied_count(self) -> int:
        return sum(1 for occupant in self.seats if occupant is not None)

    def seat_player(self, conn_id: str, name: str) -> int:
        existing = self.seat_of(conn_id)
        if existing is not None:
            return existing
        seat = next((idx for idx, occupant in enumerate(self.seats) if occupant is None), None)
        if seat is None:
            raise RoomFull()
        self.seats[seat] = conn_id
        self.names[seat] = (name or "").strip()[:MAX_NAME_LENGTH] or f"Player {seat + 1}"
        self.ready[seat] = False
        return seat

    def vacate(self, seat: int):
        self.seats[seat] = None
        self.names[seat] = ""
        self.ready[seat] = False
        if self.phase == "lobby":
            return
        if self.settings.vacant_seat_policy == "reset":
            logger.info("Room %s: seat %s left during %s, back to lobby", self.code, seat, self.phase)
            self._reset_to_lobby()

    def _reset_to_lobby(self):
        self.phase = "lobby"
        self.turn_deadline = None
        self.stock = []
        self.face_up = None
        self.trump_suit = None
        self.hands = [[] for _ in range(SEATS)]
        self.won = [[], []]
        self.trick = []
        self.last_trick = None
        self.leader_seat = 0
        self.turn_seat = 0
        self.tricks_played = 0
        self.team_score = [0, 0]

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def _arm_deadline(self, now: int):
        timeout = self.settings.turn_timeout_sec
        self.turn_deadline = now + timeout * 1000 if timeout else None

    def deadline_expired(self, now: int) -> bool:
        return self.phase == "playing" and self.turn_deadline is not None and now >= self.turn_deadline

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------
    def set_ready(self, conn_id: str, ready: bool, *, now: Optional[int] = None):
        seat = self.require_seat(conn_id)
        self.ready[seat] = bool(ready)
        all_in = all(occupant is not None for occupant in self.seats)
        if self.phase == "lobby" and all_in and all(self.ready):
            self._start(now if now is not None else now_ms())

    def _start(self, now: int):
        deck = shuffle(make_deck(), self.rng)
        self.face_up = deck.pop(0)
        self.trump_suit = self.face_up.suit
        self.hands = [[] for _ in range(SEATS)]
        for seat in range(SEATS):
            self.hands[seat] = deck[: self.settings.hand_size]
            del deck[: self.settings.hand_size]
        self.stock = deck
        self.won = [[], []]
        self.trick = []
        self.last_trick = None
        self.tricks_played = 0
        self.team_score = [0, 0]
        self.leader_seat = 0
        self.turn_seat = 0
        self.phase = "playing"
        self._arm_deadline(now)
        logger.info("Room %s: game started, trump %s (%s)", self.code, self.trump_suit, self.face_up.id)

    def play_card(self, conn_id: str, card_id: str, *, now: Optional[int] = None) -> Card:
        seat = self.require_seat(conn_id)
        if self.phase != "playing":
            raise NotPlayingPhase()
        if seat != self.turn_seat:
            raise NotYourTurn()
        card = next((c for c in self.hands[seat] if c.id == card_id), None)
        if card is None:
            raise CardNotInHand()
        self._commit_play(seat, card, now if now is not None else now_ms())
        return card

    def _commit_play(self, seat: int, card: Card, now: int):
        self.hands[seat] = [c for c in self.hands[seat] if c.id != card.id]
        self.trick.append(TrickPlay(seat=seat, card=card))
        self.turn_seat = next_seat(self.turn_seat)
        self._arm_deadline(now)
        if len(self.trick) == SEATS:
            self._resolve_trick(now)

    def _cards_left(self) -> bool:
        return bool(self.stock) or self.face_up is not None or any(self.hands)

    def _resolve_trick(self, now: int):
        winner = trick_winner(self.trick, self.trump_suit)
        self.leader_seat = winner
        self.turn_seat = winner
        self.tricks_played += 1

        cards = [play.card for play in self.trick]
        is_last = not self._cards_left()
        points = trick_points(cards, last_trick=is_last, bonus=self.settings.last_trick_bonus)
        team = team_of_seat(winner)
        self.team_score[team] += points
        self.won[team].extend(cards)
        self.last_trick = LastTrick(winnerSeat=winner, points=points, plays=list(self.trick))
        self.trick = []
        logger.debug("Room %s: trick %s to seat %s for %s", self.code, self.tricks_played, winner, points)

        self._replenish(winner)

        target = self.settings.target_score
        if any(score >= target for score in self.team_score) or not self._cards_left():
            self.phase = "ended"
            self.turn_deadline = None
            logger.info("Room %s: game ended, score %s", self.code, self.team_score)
        else:
            self._arm_deadline(now)

    def _draw(self) -> Optional[Card]:
        if self.stock:
            return self.stock.pop(0)
        if self.face_up is not None:
            card, self.face_up = self.face_up, None
            return card
        return None

    def _replenish(self, start_seat: int):
        for offset in range(SEATS):
            card = self._draw()
            if card is None:
                return
            self.hands[(start_seat + offset) % SEATS].append(card)

    def swap_trump(self, conn_id: str, *, now: Optional[int] = None) -> Card:
        seat = self.require_seat(conn_id)
        if self.phase != "playing":
            raise NotPlayingPhase()
        if seat != self.turn_seat:
            raise NotYourTurn()
        result = swap_trump(self.face_up, self.trump_suit, self.hands[seat])
        if result is None:
            raise SwapNotAllowed()
        taken = self.face_up
        self.face_up, self.hands[seat] = result
        self._arm_deadline(now if now is not None else now_ms())
        logger.info("Room %s: seat %s swapped %s for %s", self.code, seat, self.face_up.id, taken.id)
        return taken

    def can_swap(self, seat: int) -> bool:
        return (
            self.phase == "playing"
            and seat == self.turn_seat
            and can_swap_trump(self.face_up, self.trump_suit, self.hands[seat])
        )

    def send_chat(self, conn_id: str, text: str, *, now: Optional[int] = None) -> ChatEntry:
        seat = self.require_seat(conn_id)
        msg = str(text or "")[: self.settings.chat_max_length]
        if not msg.strip():
            raise EmptyMessage()
        entry = ChatEntry(seat=seat, name=self.names[seat], msg=msg, ts=now if now is not None else now_ms())
        self.chat.append(entry)
        return entry

    def auto_play(self, now: Optional[int] = None) -> bool:
        """Play the weakest card for a seat whose turn deadline lapsed.

        Returns True when the room state changed.
        """
        now = now if now is not None else now_ms()
        if self.busy or not self.deadline_expired(now):
            return False
        self.busy = True
        try:
            seat = self.turn_seat
            if self.seats[seat] is None and self.settings.vacant_seat_policy == "reset":
                logger.warning("Room %s: turn seat %s is empty, aborting game", self.code, seat)
                self._reset_to_lobby()
                return True
            card = weakest_card(self.hands[seat], self.trump_suit)
            if card is None:
                logger.warning("Room %s: seat %s has no cards on timeout, aborting game", self.code, seat)
                self._reset_to_lobby()
                return True
            logger.info("Room %s: seat %s timed out, auto-playing %s", self.code, seat, card.id)
            self._commit_play(seat, card, now)
            return True
        finally:
            self.busy = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def hand_of(self, seat: int) -> List[Card]:
        return list(self.hands[seat])

    def card_census(self) -> List[Card]:
        cards: List[Card] = list(self.stock)
        if self.face_up is not None:
            cards.append(self.face_up)
        for hand in self.hands:
            cards.extend(hand)
        cards.extend(play.card for play in self.trick)
        for pile in self.won:
            cards.extend(pile)
        return cards

    def winner_team(self) -> Optional[int]:
        if self.phase != "ended" or self.team_score[0] == self.team_score[1]:
            return None
        return 0 if self.team_score[0] > self.team_score[1] else 1

    def public_state(self) -> RoomState:
        seats = [
            SeatView(
                seat=seat,
                occupied=self.seats[seat] is not None,
                name=self.names[seat],
                ready=self.ready[seat],
                team=team_of_seat(seat),
                handCount=len(self.hands[seat]),
            )
            for seat in range(SEATS)
        ]
        tail = list(self.chat)[-self.settings.chat_tail :] if self.settings.chat_tail else []
        return RoomState(
            code=self.code,
            phase=self.phase,
            seats=seats,
            trumpSuit=self.trump_suit,
            faceUp=self.face_up,
            leaderSeat=self.leader_seat,
            turnSeat=self.turn_seat,
            turnDeadline=self.turn_deadline,
            trick=list(self.trick),
            lastTrick=self.last_trick,
            teamScore=list(self.team_score),
            tricksPlayed=self.tricks_played,
            stockCount=len(self.stock),
            targetScore=self.settings.target_score,
            winnerTeam=self.winner_team(),
            chat=tail,
        )

    def summary(self) -> RoomSummary:
        return RoomSummary(
            code=self.code,
            phase=self.phase,
            players=self.occupied_count(),
            names=[name for name in self.names if name],
        )


class RoomRegistry:
    """Owns every live room. One instance per process, handed to the gateway."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code) -> bool:
        return normalize_code(code) in self._rooms

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def get(self, code) -> Room:
        room = self._rooms.get(normalize_code(code))
        if room is None:
            raise RoomNotFound()
        return room

    def _new_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(self.rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self._rooms:
                return code
        raise RoomCodesExhausted()

    def create_room(self, conn_id: str, name: str) -> Tuple[Room, int]:
        code = self._new_code()
        room = Room(code, self.settings, rng=self.rng)
        self._rooms[code] = room
        seat = room.seat_player(conn_id, name)
        logger.info("Room %s created by %s", code, conn_id)
        return room, seat

    def join_room(self, conn_id: str, code, name: str) -> Tuple[Room, int]:
        room = self.get(code)
        seat = room.seat_player(conn_id, name)
        logger.info("Room %s: %s took seat %s", room.code, conn_id, seat)
        return room, seat

    def leave_room(self, conn_id: str, code) -> Optional[Room]:
        """Free the caller's seat. Returns None when the room was reclaimed."""
        room = self.get(code)
        seat = room.require_seat(conn_id)
        room.vacate(seat)
        return self._reclaim(room)

    def disconnect(self, conn_id: str) -> List[Tuple[str, Optional[Room]]]:
        affected: List[Tuple[str, Optional[Room]]] = []
        for room in list(self._rooms.values()):
            seat = room.seat_of(conn_id)
            if seat is None:
                continue
            room.vacate(seat)
            affected.append((room.code, self._reclaim(room)))
        return affected

    def _reclaim(self, room: Room) -> Optional[Room]:
        if room.is_empty():
            self._rooms.pop(room.code, None)
            logger.info("Room %s empty, removed", room.code)
            return None
        return room

    def tick(self, now: Optional[int] = None) -> List[Room]:
        now = now if now is not None else now_ms()
        changed: List[Room] = []
        for room in list(self._rooms.values()):
            if room.auto_play(now):
                changed.append(room)
        return changed

    def summary(self) -> List[RoomSummary]:
        return [room.summary() for room in self._rooms.values()]
