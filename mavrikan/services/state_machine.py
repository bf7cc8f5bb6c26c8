from enum import Enum


class FlowState(str, Enum):
    IDLE = "idle"
    COMPLETED = "completed"
    AWAITING_LOCATION = "awaiting_location"
    AWAITING_ITEM = "awaiting_item"
    # Mattress chain
    MATTRESS_TYPE = "mattress_type"
    MATTRESS_BOTH_SIDES = "mattress_both_sides"
    MATTRESS_STAINS = "mattress_stains"
    MATTRESS_AGE = "mattress_age"
    MATTRESS_PHOTO = "mattress_photo"
    # Sofa chain
    SOFA_TYPE = "sofa_type"
    SOFA_PHOTO = "sofa_photo"
    # Carpet chain
    CARPET_TYPE = "carpet_type"
    CARPET_SIZE = "carpet_size"
    CARPET_PHOTO = "carpet_photo"
    # Several items in one request
    MULTIPLE_SELECT = "multiple_select"


class ItemKind(str, Enum):
    SOFA = "sofa"
    MATTRESS = "mattress"
    CARPET = "carpet"


# Lead item_type for leads combining several items
MULTIPLE_ITEMS = "multiple"

RESTING_STATES = frozenset({FlowState.IDLE, FlowState.COMPLETED})

ITEM_CHAINS: dict[ItemKind, tuple[FlowState, ...]] = {
    ItemKind.MATTRESS: (
        FlowState.MATTRESS_TYPE,
        FlowState.MATTRESS_BOTH_SIDES,
        FlowState.MATTRESS_STAINS,
        FlowState.MATTRESS_AGE,
        FlowState.MATTRESS_PHOTO,
    ),
    ItemKind.SOFA: (FlowState.SOFA_TYPE, FlowState.SOFA_PHOTO),
    ItemKind.CARPET: (FlowState.CARPET_TYPE, FlowState.CARPET_SIZE, FlowState.CARPET_PHOTO),
}

PHOTO_STATES = {chain[-1]: item for item, chain in ITEM_CHAINS.items()}

_ITEM_ENTRY_STATES = [chain[0] for chain in ITEM_CHAINS.values()]

VALID_TRANSITIONS: dict[FlowState, list[FlowState]] = {
    FlowState.IDLE: [FlowState.AWAITING_LOCATION],
    FlowState.COMPLETED: [],
    FlowState.AWAITING_LOCATION: [FlowState.AWAITING_ITEM],
    FlowState.AWAITING_ITEM: [*_ITEM_ENTRY_STATES, FlowState.MULTIPLE_SELECT],
    FlowState.MULTIPLE_SELECT: list(_ITEM_ENTRY_STATES),
    FlowState.MATTRESS_TYPE: [FlowState.MATTRESS_BOTH_SIDES],
    FlowState.MATTRESS_BOTH_SIDES: [FlowState.MATTRESS_STAINS],
    FlowState.MATTRESS_STAINS: [FlowState.MATTRESS_AGE],
    FlowState.MATTRESS_AGE: [FlowState.MATTRESS_PHOTO],
    FlowState.MATTRESS_PHOTO: [*_ITEM_ENTRY_STATES, FlowState.COMPLETED],
    FlowState.SOFA_TYPE: [FlowState.SOFA_PHOTO],
    FlowState.SOFA_PHOTO: [*_ITEM_ENTRY_STATES, FlowState.COMPLETED],
    FlowState.CARPET_TYPE: [FlowState.CARPET_SIZE],
    FlowState.CARPET_SIZE: [FlowState.CARPET_PHOTO],
    FlowState.CARPET_PHOTO: [*_ITEM_ENTRY_STATES, FlowState.COMPLETED],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: FlowState, to_state: FlowState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: FlowState, to_state: FlowState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: FlowState, to_state: FlowState) -> FlowState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def first_state_for(item: ItemKind) -> FlowState:
    """Entry question of an item's chain."""
    return ITEM_CHAINS[item][0]


def is_active(state: FlowState) -> bool:
    """True while a contact is mid-flow."""
    return state not in RESTING_STATES


def parse_state(value: str | None) -> FlowState:
    """Read a stored state tag; unknown or empty tags fall back to idle."""
    try:
        return FlowState(value or FlowState.IDLE.value)
    except ValueError:
        return FlowState.IDLE
