from datetime import datetime, timedelta, timezone

from mavrikan.models import Conversation
from mavrikan.services.conversation_service import (
    complete_conversation,
    get_conversation,
    mark_owner_contacted,
    save_conversation,
    sweep_idle_conversations,
    update_chat_address,
)
from mavrikan.services.state_machine import FlowState

PHONE = "972501234567"


class TestSaveConversation:
    def test_creates_record(self, db_session):
        save_conversation(db_session, PHONE, "Dana", FlowState.AWAITING_LOCATION, {"chat_address": f"{PHONE}@c.us"})
        db_session.commit()

        conversation = get_conversation(db_session, PHONE)
        assert conversation.state == "awaiting_location"
        assert conversation.display_name == "Dana"
        assert conversation.data == {"chat_address": f"{PHONE}@c.us"}
        assert conversation.updated_at is not None

    def test_name_defaults_to_phone(self, db_session):
        conversation = save_conversation(db_session, PHONE, None, FlowState.AWAITING_LOCATION)
        assert conversation.display_name == PHONE

    def test_data_is_merged_not_replaced(self, db_session):
        save_conversation(db_session, PHONE, "Dana", FlowState.AWAITING_ITEM, {"location": "חיפה"})
        save_conversation(db_session, PHONE, None, FlowState.SOFA_TYPE, {"item_type": "sofa"})
        db_session.commit()

        conversation = get_conversation(db_session, PHONE)
        assert conversation.data == {"location": "חיפה", "item_type": "sofa"}
        assert conversation.display_name == "Dana"

    def test_clear_removes_keys(self, db_session):
        save_conversation(db_session, PHONE, "Dana", FlowState.SOFA_TYPE, {"sofa_type": "X", "location": "עכו"})
        save_conversation(db_session, PHONE, None, FlowState.MATTRESS_TYPE, {}, clear=("sofa_type",))
        assert get_conversation(db_session, PHONE).data == {"location": "עכו"}


class TestChatAddress:
    def test_switch_recorded(self, db_session):
        conversation = save_conversation(
            db_session, PHONE, "Dana", FlowState.AWAITING_ITEM, {"chat_address": f"{PHONE}@c.us"}
        )
        assert update_chat_address(db_session, conversation, f"{PHONE}@lid") is True
        assert conversation.data["chat_address"] == f"{PHONE}@lid"

    def test_same_address_no_write(self, db_session):
        conversation = save_conversation(
            db_session, PHONE, "Dana", FlowState.AWAITING_ITEM, {"chat_address": f"{PHONE}@c.us"}
        )
        assert update_chat_address(db_session, conversation, f"{PHONE}@c.us") is False


class TestCompleteConversation:
    def test_reset_keeps_only_sticky_keys(self, db_session):
        save_conversation(
            db_session,
            PHONE,
            "Dana",
            FlowState.SOFA_PHOTO,
            {"chat_address": f"{PHONE}@lid", "location": "חיפה", "sofa_type": "X", "owner_contacted": "t"},
        )
        conversation = complete_conversation(db_session, PHONE)
        db_session.commit()

        assert conversation.state == "completed"
        assert set(conversation.data) == {"chat_address", "owner_contacted", "completed_at"}
        assert conversation.data["chat_address"] == f"{PHONE}@lid"

    def test_unknown_phone(self, db_session):
        assert complete_conversation(db_session, "000") is None


class TestMarkOwnerContacted:
    def test_creates_idle_record(self, db_session):
        conversation, changed = mark_owner_contacted(db_session, PHONE, chat_address=f"{PHONE}@c.us")
        db_session.commit()

        assert changed is True
        assert conversation.state == "idle"
        assert conversation.data["owner_contacted"]
        assert conversation.data["chat_address"] == f"{PHONE}@c.us"

    def test_existing_record_keeps_state_and_data(self, db_session):
        save_conversation(db_session, PHONE, "Dana", FlowState.CARPET_SIZE, {"carpet_type": "שטיח שאגי"})
        conversation, changed = mark_owner_contacted(db_session, PHONE)

        assert changed is True
        assert conversation.state == "carpet_size"
        assert conversation.data["carpet_type"] == "שטיח שאגי"
        assert conversation.data["owner_contacted"]

    def test_already_marked_is_noop(self, db_session):
        mark_owner_contacted(db_session, PHONE)
        first = get_conversation(db_session, PHONE).data["owner_contacted"]
        _, changed = mark_owner_contacted(db_session, PHONE)

        assert changed is False
        assert get_conversation(db_session, PHONE).data["owner_contacted"] == first


class TestSweepIdleConversations:
    def _add(self, db_session, phone, state, minutes_ago, data=None):
        db_session.add(
            Conversation(
                phone=phone,
                display_name=phone,
                state=state,
                data=data or {},
                updated_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
            )
        )
        db_session.commit()

    def test_stale_mid_flow_reset(self, db_session):
        self._add(db_session, "1001", "mattress_age", 45, {"location": "חיפה", "chat_address": "1001@lid"})
        self._add(db_session, "1002", "mattress_age", 5)
        self._add(db_session, "1003", "completed", 500, {"completed_at": "t"})
        self._add(db_session, "1004", "idle", 500)

        assert sweep_idle_conversations(db_session, timeout_minutes=30) == 1

        swept = get_conversation(db_session, "1001")
        assert swept.state == "idle"
        assert swept.data == {"chat_address": "1001@lid"}
        assert get_conversation(db_session, "1002").state == "mattress_age"
        assert get_conversation(db_session, "1003").state == "completed"
