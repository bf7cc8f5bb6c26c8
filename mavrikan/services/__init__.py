from mavrikan.services.conversation_service import (
    complete_conversation,
    get_conversation,
    mark_owner_contacted,
    save_conversation,
    sweep_idle_conversations,
)
from mavrikan.services.flow_engine import InboundTurn, Outcome, Transition, step
from mavrikan.services.state_machine import (
    FlowState,
    InvalidTransitionError,
    ItemKind,
    can_transition,
    transition,
)
