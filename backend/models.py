from __future__ import annotations
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator

Suit = Literal["♠", "♥", "♦", "♣"]
Rank = Literal["3", "4", "5", "6", "J", "Q", "K", "7", "A"]
Phase = Literal["lobby", "playing", "ended"]

SUIT_COLOR: Dict[Suit, Literal["red", "black"]] = {
    "♠": "black",
    "♣": "black",
    "♥": "red",
    "♦": "red",
}


class Card(BaseModel):
    rank: Rank
    suit: Suit
    id: str = ""
    color: Optional[Literal["red", "black"]] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, value):
        if isinstance(value, dict):
            suit = value.get("suit")
            rank = value.get("rank")
            if suit in SUIT_COLOR and value.get("color") is None:
                value = {**value, "color": SUIT_COLOR[suit]}
            if not value.get("id") and suit and rank:
                value = {**value, "id": f"{rank}{suit}"}
        return value


class TrickPlay(BaseModel):
    seat: int
    card: Card


class LastTrick(BaseModel):
    winner_seat: int = Field(alias="winnerSeat")
    points: int
    plays: List[TrickPlay]

    model_config = ConfigDict(populate_by_name=True)


class ChatEntry(BaseModel):
    seat: int
    name: str
    msg: str
    ts: int


class SeatView(BaseModel):
    seat: int
    occupied: bool
    name: str
    ready: bool
    team: int
    hand_count: int = Field(0, alias="handCount")

    model_config = ConfigDict(populate_by_name=True)


class RoomState(BaseModel):
    """Public snapshot broadcast to every seat. Never carries hand contents."""

    code: str
    phase: Phase
    seats: List[SeatView]
    trump_suit: Optional[Suit] = Field(None, alias="trumpSuit")
    face_up: Optional[Card] = Field(None, alias="faceUp")
    leader_seat: int = Field(0, alias="leaderSeat")
    turn_seat: int = Field(0, alias="turnSeat")
    turn_deadline: Optional[int] = Field(None, alias="turnDeadline")
    trick: List[TrickPlay] = Field(default_factory=list)
    last_trick: Optional[LastTrick] = Field(None, alias="lastTrick")
    team_score: List[int] = Field(default_factory=lambda: [0, 0], alias="teamScore")
    tricks_played: int = Field(0, alias="tricksPlayed")
    stock_count: int = Field(0, alias="stockCount")
    target_score: int = Field(61, alias="targetScore")
    winner_team: Optional[int] = Field(None, alias="winnerTeam")
    chat: List[ChatEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class RoomSummary(BaseModel):
    code: str
    phase: Phase
    players: int
    names: List[str]


# ---------- inbound intents ----------
class CreateRoomIntent(BaseModel):
    name: str = ""

    model_config = ConfigDict(extra="ignore")


class JoinRoomIntent(BaseModel):
    code: str
    name: str = ""

    model_config = ConfigDict(extra="ignore")


class RoomIntent(BaseModel):
    code: str

    model_config = ConfigDict(extra="ignore")


class ReadyIntent(RoomIntent):
    ready: bool = True


class PlayCardIntent(RoomIntent):
    card_id: str = Field(alias="cardId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChatIntent(RoomIntent):
    msg: str = ""
