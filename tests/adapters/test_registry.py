from __future__ import annotations

import pytest

from sitemod.adapters.cms import ADAPTERS, ManualAdapter, SquarespaceAdapter, build_adapter
from sitemod.domain.modifications import (
    ActionType,
    ErrorKind,
    ModificationChanges,
    ModificationError,
    ModificationRequest,
    Provider,
    decode_payload,
)
from tests._doubles import DummySession


def test_every_provider_has_an_adapter() -> None:
    assert set(ADAPTERS) == set(Provider)
    for provider, adapter_cls in ADAPTERS.items():
        assert adapter_cls.provider is provider


def test_build_adapter_validates_credentials_eagerly(settings) -> None:
    session = DummySession()
    with pytest.raises(ModificationError) as excinfo:
        build_adapter(Provider.SHOPIFY, {"shop": "acme"}, settings=settings, session=session)  # type: ignore[arg-type]
    assert excinfo.value.kind is ErrorKind.MISSING_CREDENTIALS
    assert "accessToken" in excinfo.value.message
    assert session.calls == []


def test_manual_adapter_returns_instructions_and_noop_record(settings) -> None:
    request = ModificationRequest(
        project_id="p",
        action_type=ActionType.HEADING,
        target="about-us",
        changes=ModificationChanges(before="Welcome", after='{"h1": "About Acme"}'),
        rollback_token="rb-3",
    )
    adapter = build_adapter(Provider.MANUAL, {}, settings=settings)
    assert isinstance(adapter, ManualAdapter)
    result = adapter.apply(request, decode_payload(request.action_type, request.changes.after))

    assert result.success
    assert result.instructions and '"About Acme"' in result.instructions
    record = result.rollback_data.to_dict()
    assert record["type"] == "manual"
    assert record["original"] == {"value": "Welcome"}
    assert record["instructions"] == result.instructions
    assert record["noop"] is True


def test_squarespace_is_unsupported_provider(settings) -> None:
    adapter = build_adapter(Provider.SQUARESPACE, {"apiKey": "k"}, settings=settings)
    assert isinstance(adapter, SquarespaceAdapter)
    with pytest.raises(ModificationError) as excinfo:
        adapter.check()
    assert excinfo.value.kind is ErrorKind.UNSUPPORTED_PROVIDER
