"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

import base64
import json


class TestSchemaImports:
    def test_import_shop_schema(self):
        from shopfinder.schemas.shop_schema import HEADER, Service, ShopRecord, StaffType
        assert len(HEADER) == 12
        assert StaffType.MIXED == "Mixed/Other"
        assert Service.TOW == "Tow"
        assert ShopRecord is not None

    def test_import_state_schema(self):
        from shopfinder.schemas.state_schema import AddState, AddStep, flow_state_adapter
        state = flow_state_adapter.validate_python({"flow": "add"})
        assert isinstance(state, AddState)
        assert state.step == AddStep.SHOP_NAME

    def test_import_messaging_schema(self):
        from shopfinder.schemas.messaging_schema import ConversationKey
        assert str(ConversationKey(1, 2)) == "1:2"


class TestConversationImports:
    def test_package_reexports(self):
        from shopfinder.conversation import (
            AddFlowStateMachine,
            AddShopFlow,
            Dispatcher,
            FieldManager,
            InvalidTransitionError,
            SearchFlow,
            TransitionTrigger,
        )
        assert AddFlowStateMachine().expects_text()
        assert issubclass(InvalidTransitionError, Exception)
        assert all([AddShopFlow, Dispatcher, FieldManager, SearchFlow, TransitionTrigger])


class TestToolImports:
    def test_import_clients(self):
        from shopfinder.tools.geocoding import GeocodingClient, GeocodingError
        from shopfinder.tools.google_auth import ServiceAccountTokenProvider, TokenExchangeError
        from shopfinder.tools.sheets import HeaderMismatchError, SheetsClient, SheetsError
        assert issubclass(HeaderMismatchError, SheetsError)
        assert all([GeocodingClient, GeocodingError, ServiceAccountTokenProvider,
                    TokenExchangeError, SheetsClient])


class TestPromptImports:
    def test_every_text_step_has_a_prompt(self):
        from shopfinder.conversation.state_machine import TEXT_STEPS
        from shopfinder.prompts.messages import STEP_PROMPTS
        for step in TEXT_STEPS:
            assert step.value in STEP_PROMPTS


class TestWiring:
    def test_build_dispatcher(self, monkeypatch):
        from google.auth import crypt

        from shopfinder.config import AppConfig
        from shopfinder.container import build_dispatcher
        from shopfinder.conversation.dispatcher import Dispatcher

        bundle = base64.b64encode(json.dumps({
            "client_email": "bot@example.iam.gserviceaccount.com",
            "private_key": "unused",
        }).encode()).decode()
        monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-1")
        monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_B64", bundle)
        monkeypatch.setenv("NOMINATIM_USER_AGENT", "shopfinder-tests (ops@example.com)")
        monkeypatch.setenv("WEBHOOK_PATH", "/hook")
        monkeypatch.setattr(
            crypt.RSASigner, "from_service_account_info", lambda info: object()
        )

        class NullTransport:
            async def deliver(self, event, replies):
                pass

        dispatcher = build_dispatcher(AppConfig(), NullTransport())
        assert isinstance(dispatcher, Dispatcher)

    def test_import_api(self):
        from shopfinder.api import create_app
        assert callable(create_app)
