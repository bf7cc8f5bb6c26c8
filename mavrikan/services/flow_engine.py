"""Pure transition logic of the lead qualification dialog.

`step(state, data, turn)` never touches the database or the network: it
returns a `Transition` describing the next state, the shallow data patch,
the replies to send and, when the last item is answered, the lead to file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from mavrikan.services import messages
from mavrikan.services.input_parser import (
    CARPET_TYPE_OPTIONS,
    MATTRESS_TYPE_OPTIONS,
    MULTIPLE_ITEMS_LABEL,
    SOFA_TYPE_OPTIONS,
    YES_NO_OPTIONS,
    contains_trigger,
    is_skip,
    parse_item_choice,
    parse_multiple_items,
    parse_poll_selections,
    resolve_option,
)
from mavrikan.services.state_machine import (
    ITEM_CHAINS,
    MULTIPLE_ITEMS,
    PHOTO_STATES,
    FlowState,
    ItemKind,
    first_state_for,
    transition,
)

KEY_LOCATION = "location"
KEY_CHAT_ADDRESS = "chat_address"
KEY_ITEM_TYPE = "item_type"
KEY_CURRENT_ITEM = "current_item"
KEY_PENDING_ITEMS = "pending_items"
KEY_COMPLETED_ITEMS = "completed_items"
KEY_OWNER_CONTACTED = "owner_contacted"
KEY_COMPLETED_AT = "completed_at"

# Survive resets and idle sweeps
STICKY_KEYS = (KEY_CHAT_ADDRESS, KEY_OWNER_CONTACTED, KEY_COMPLETED_AT)

# question state -> (answer key, option vocabulary); empty vocabulary keeps free text
ANSWER_STEPS: dict[FlowState, tuple[str, tuple[str, ...]]] = {
    FlowState.MATTRESS_TYPE: ("mattress_type", MATTRESS_TYPE_OPTIONS),
    FlowState.MATTRESS_BOTH_SIDES: ("both_sides", YES_NO_OPTIONS),
    FlowState.MATTRESS_STAINS: ("stains", YES_NO_OPTIONS),
    FlowState.MATTRESS_AGE: ("age", ()),
    FlowState.SOFA_TYPE: ("sofa_type", SOFA_TYPE_OPTIONS),
    FlowState.CARPET_TYPE: ("carpet_type", CARPET_TYPE_OPTIONS),
    FlowState.CARPET_SIZE: ("carpet_size", ()),
}

ANSWER_KEYS = tuple(key for key, _ in ANSWER_STEPS.values())

FLOW_KEYS = (
    KEY_LOCATION,
    KEY_ITEM_TYPE,
    KEY_CURRENT_ITEM,
    KEY_PENDING_ITEMS,
    KEY_COMPLETED_ITEMS,
    *ANSWER_KEYS,
)

# answer key -> key in the lead's item details
ITEM_DETAIL_FIELDS: dict[ItemKind, tuple[tuple[str, str], ...]] = {
    ItemKind.MATTRESS: (
        ("mattress_type", "variant"),
        ("both_sides", "both_sides"),
        ("stains", "stains"),
        ("age", "age"),
    ),
    ItemKind.SOFA: (("sofa_type", "variant"),),
    ItemKind.CARPET: (("carpet_type", "variant"), ("carpet_size", "size")),
}


class Outcome(str, Enum):
    IGNORED = "ignored"
    STARTED = "started"
    ADVANCED = "advanced"
    REPROMPTED = "reprompted"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class InboundTurn:
    text: str = ""
    has_media: bool = False
    media_url: Optional[str] = None
    selections: tuple[str, ...] = ()


@dataclass
class CompletedItem:
    type: ItemKind
    details: dict[str, Any]
    photos: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "details": dict(self.details), "photos": list(self.photos)}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CompletedItem":
        return cls(
            type=ItemKind(raw["type"]),
            details=dict(raw.get("details") or {}),
            photos=[photo for photo in raw.get("photos") or [] if photo],
        )


@dataclass
class FlowData:
    """Typed view over the conversation's open `data` mapping."""

    location: Optional[str] = None
    chat_address: Optional[str] = None
    current_item: Optional[ItemKind] = None
    pending_items: list[ItemKind] = field(default_factory=list)
    completed_items: list[CompletedItem] = field(default_factory=list)
    answers: dict[str, str] = field(default_factory=dict)
    owner_contacted: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[dict[str, Any]]) -> "FlowData":
        raw = raw if isinstance(raw, dict) else {}
        current = raw.get(KEY_CURRENT_ITEM)
        return cls(
            location=raw.get(KEY_LOCATION),
            chat_address=raw.get(KEY_CHAT_ADDRESS),
            current_item=ItemKind(current) if current else None,
            pending_items=[ItemKind(item) for item in raw.get(KEY_PENDING_ITEMS) or []],
            completed_items=[CompletedItem.from_dict(item) for item in raw.get(KEY_COMPLETED_ITEMS) or []],
            answers={key: raw[key] for key in ANSWER_KEYS if raw.get(key) is not None},
            owner_contacted=raw.get(KEY_OWNER_CONTACTED),
            completed_at=raw.get(KEY_COMPLETED_AT),
        )


@dataclass
class LeadDraft:
    item_type: str
    item_details: dict[str, Any]
    photos: list[str]
    location: Optional[str]


@dataclass
class Transition:
    state: FlowState
    outcome: Outcome
    updates: dict[str, Any] = field(default_factory=dict)
    clear: tuple[str, ...] = ()
    replies: list[str] = field(default_factory=list)
    lead: Optional[LeadDraft] = None

    @property
    def writes(self) -> bool:
        return self.outcome in (Outcome.STARTED, Outcome.ADVANCED, Outcome.COMPLETED)


def _ignore(state: FlowState) -> Transition:
    return Transition(state=state, outcome=Outcome.IGNORED)


def _reprompt(state: FlowState, reply: str) -> Transition:
    return Transition(state=state, outcome=Outcome.REPROMPTED, replies=[reply])


def start_flow() -> Transition:
    return Transition(
        state=transition(FlowState.IDLE, FlowState.AWAITING_LOCATION),
        outcome=Outcome.STARTED,
        clear=FLOW_KEYS,
        replies=[messages.MSG_WELCOME],
    )


def _handle_location(state: FlowState, data: FlowData, turn: InboundTurn) -> Transition:
    location = turn.text.strip()
    if not location:
        return _reprompt(state, messages.context_error(turn.text, state))
    next_state = transition(state, FlowState.AWAITING_ITEM)
    return Transition(
        state=next_state,
        outcome=Outcome.ADVANCED,
        updates={KEY_LOCATION: location},
        replies=[messages.QUESTIONS[next_state]],
    )


def _handle_item_choice(state: FlowState, data: FlowData, turn: InboundTurn) -> Transition:
    choice = parse_item_choice(turn.text)
    if choice is None:
        return _reprompt(state, messages.context_error(turn.text, state))

    if choice == MULTIPLE_ITEMS_LABEL:
        next_state = transition(state, FlowState.MULTIPLE_SELECT)
        return Transition(
            state=next_state,
            outcome=Outcome.ADVANCED,
            updates={KEY_ITEM_TYPE: MULTIPLE_ITEMS},
            replies=[messages.QUESTIONS[next_state]],
        )

    next_state = transition(state, first_state_for(choice))
    return Transition(
        state=next_state,
        outcome=Outcome.ADVANCED,
        updates={
            KEY_ITEM_TYPE: choice.value,
            KEY_CURRENT_ITEM: choice.value,
            KEY_PENDING_ITEMS: [],
            KEY_COMPLETED_ITEMS: [],
        },
        replies=[messages.QUESTIONS[next_state]],
    )


def _handle_multiple_select(state: FlowState, data: FlowData, turn: InboundTurn) -> Transition:
    if turn.selections:
        items = parse_poll_selections(turn.selections)
    else:
        items = parse_multiple_items(turn.text)
    if not items:
        return _reprompt(state, messages.context_error(turn.text, state))

    first, *rest = items
    next_state = transition(state, first_state_for(first))
    return Transition(
        state=next_state,
        outcome=Outcome.ADVANCED,
        updates={
            KEY_ITEM_TYPE: MULTIPLE_ITEMS,
            KEY_CURRENT_ITEM: first.value,
            KEY_PENDING_ITEMS: [item.value for item in rest],
            KEY_COMPLETED_ITEMS: [],
        },
        clear=ANSWER_KEYS,
        replies=[messages.starting_with(first), messages.QUESTIONS[next_state]],
    )


def _next_in_chain(state: FlowState) -> FlowState:
    for chain in ITEM_CHAINS.values():
        if state in chain:
            return chain[chain.index(state) + 1]
    raise ValueError(f"State {state.value} is not part of an item chain")


def _handle_answer(state: FlowState, data: FlowData, turn: InboundTurn) -> Transition:
    key, options = ANSWER_STEPS[state]
    if not turn.text.strip():
        return _reprompt(state, messages.context_error(turn.text, state))

    answer = resolve_option(turn.text, options) if options else turn.text.strip()
    next_state = transition(state, _next_in_chain(state))
    return Transition(
        state=next_state,
        outcome=Outcome.ADVANCED,
        updates={key: answer},
        replies=[messages.QUESTIONS[next_state]],
    )


def _item_details(item: ItemKind, answers: dict[str, str]) -> dict[str, Any]:
    return {detail_key: answers.get(answer_key) for answer_key, detail_key in ITEM_DETAIL_FIELDS[item]}


def _finalize(completed: list[CompletedItem], location: Optional[str]) -> LeadDraft:
    if len(completed) > 1:
        return LeadDraft(
            item_type=MULTIPLE_ITEMS,
            item_details={"items": [{"type": item.type.value, **item.details} for item in completed]},
            photos=[photo for item in completed for photo in item.photos],
            location=location,
        )
    only = completed[0]
    return LeadDraft(
        item_type=only.type.value,
        item_details=dict(only.details),
        photos=list(only.photos),
        location=location,
    )


def _handle_photo(state: FlowState, data: FlowData, turn: InboundTurn) -> Transition:
    if turn.has_media:
        photos = [turn.media_url] if turn.media_url else []
    elif is_skip(turn.text):
        photos = []
    else:
        return _reprompt(state, messages.photo_reprompt(state))

    item = PHOTO_STATES[state]
    record = CompletedItem(type=item, details=_item_details(item, data.answers), photos=photos)
    completed = [*data.completed_items, record]

    if data.pending_items:
        next_item, *remaining = data.pending_items
        next_state = transition(state, first_state_for(next_item))
        return Transition(
            state=next_state,
            outcome=Outcome.ADVANCED,
            updates={
                KEY_ITEM_TYPE: MULTIPLE_ITEMS,
                KEY_CURRENT_ITEM: next_item.value,
                KEY_PENDING_ITEMS: [pending.value for pending in remaining],
                KEY_COMPLETED_ITEMS: [done.to_dict() for done in completed],
            },
            clear=ANSWER_KEYS,
            replies=[messages.item_transition(item, next_item), messages.QUESTIONS[next_state]],
        )

    return Transition(
        state=transition(state, FlowState.COMPLETED),
        outcome=Outcome.COMPLETED,
        lead=_finalize(completed, data.location),
    )


StepHandler = Callable[[FlowState, FlowData, InboundTurn], Transition]

_HANDLERS: dict[FlowState, StepHandler] = {
    FlowState.AWAITING_LOCATION: _handle_location,
    FlowState.AWAITING_ITEM: _handle_item_choice,
    FlowState.MULTIPLE_SELECT: _handle_multiple_select,
    **{answer_state: _handle_answer for answer_state in ANSWER_STEPS},
    **{photo_state: _handle_photo for photo_state in PHOTO_STATES},
}


def step(state: FlowState, raw_data: Optional[dict[str, Any]], turn: InboundTurn) -> Transition:
    """Decide what one inbound message does to a conversation."""
    data = FlowData.from_dict(raw_data)

    # A human owns this contact, or the lead is already filed: stay silent in any state.
    if data.owner_contacted or data.completed_at or state == FlowState.COMPLETED:
        return _ignore(state)

    if state == FlowState.IDLE:
        if not contains_trigger(turn.text):
            return _ignore(state)
        return start_flow()

    return _HANDLERS[state](state, data, turn)
