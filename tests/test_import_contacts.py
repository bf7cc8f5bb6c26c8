import importlib.util
from pathlib import Path
from unittest.mock import Mock

import pytest

from mavrikan.services.conversation_service import get_conversation, save_conversation
from mavrikan.services.state_machine import FlowState
from mavrikan.services.waha_service import WahaError

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "import_contacts.py"


@pytest.fixture(scope="module")
def import_script():
    spec = importlib.util.spec_from_file_location("import_contacts", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def gateway_with_pages(*pages):
    gateway = Mock()
    gateway.list_chats.side_effect = list(pages)
    return gateway


class TestImportContacts:
    def test_marks_private_chats_and_skips_the_rest(self, import_script, db_session):
        gateway = gateway_with_pages(
            [
                {"id": "972501234567@c.us", "name": "Dana"},
                {"id": {"_serialized": "972509999999@lid"}},
                {"id": "120363000000000000@g.us"},
                {"id": "status@broadcast"},
                {"id": "12345@c.us"},
                {"name": "no id"},
            ]
        )

        imported, already_marked, skipped = import_script.import_contacts(gateway, db_session)

        assert (imported, already_marked, skipped) == (2, 0, 4)
        dana = get_conversation(db_session, "972501234567")
        assert dana.display_name == "Dana"
        assert dana.state == "idle"
        assert dana.data["owner_contacted"]
        assert get_conversation(db_session, "972509999999").data["chat_address"] == "972509999999@lid"

    def test_existing_conversation_keeps_its_state(self, import_script, db_session):
        save_conversation(db_session, "972501234567", "Dana", FlowState.SOFA_TYPE, {"location": "חיפה"})
        db_session.commit()

        import_script.import_contacts(gateway_with_pages([{"id": "972501234567@c.us"}]), db_session)

        conversation = get_conversation(db_session, "972501234567")
        assert conversation.state == "sofa_type"
        assert conversation.data["location"] == "חיפה"
        assert conversation.data["owner_contacted"]

    def test_pages_until_short_page(self, import_script, db_session):
        full_page = [{"id": f"9725000{i:05d}@c.us"} for i in range(100)]
        gateway = gateway_with_pages(full_page, [{"id": "972501234567@c.us"}])

        imported, _, _ = import_script.import_contacts(gateway, db_session)

        assert imported == 101
        assert gateway.list_chats.call_count == 2
        assert gateway.list_chats.call_args_list[1].kwargs == {"limit": 100, "offset": 100}

    def test_already_marked_counted_separately(self, import_script, db_session):
        chats = [{"id": "972501234567@c.us"}]
        import_script.import_contacts(gateway_with_pages(chats), db_session)
        result = import_script.import_contacts(gateway_with_pages(chats), db_session)
        assert result == (0, 1, 0)

    def test_gateway_failure_propagates(self, import_script, db_session):
        gateway = Mock()
        gateway.list_chats.side_effect = WahaError("session not found")
        with pytest.raises(WahaError):
            import_script.import_contacts(gateway, db_session)
