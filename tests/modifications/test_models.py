from __future__ import annotations

import pytest

from sitemod.domain.modifications import (
    ActionType,
    CMSConnection,
    ErrorKind,
    ModificationChanges,
    ModificationError,
    ModificationRequest,
    ModificationResult,
    Provider,
    RollbackRecord,
)


def test_request_from_dict_reads_wire_shape() -> None:
    request = ModificationRequest.from_dict(
        {
            "projectId": "proj-1",
            "actionType": "meta",
            "target": " homepage ",
            "changes": {"before": "Old", "after": {"title": "New"}},
            "rollbackToken": "rb-1",
        }
    )
    assert request.action_type is ActionType.META
    assert request.target == "homepage"
    assert request.changes.after == '{"title": "New"}'
    assert request.to_dict()["rollbackToken"] == "rb-1"


def test_request_from_dict_rejects_non_object_changes() -> None:
    with pytest.raises(ModificationError) as excinfo:
        ModificationRequest.from_dict({"actionType": "meta", "target": "x", "changes": "oops"})
    assert excinfo.value.kind is ErrorKind.INVALID_PAYLOAD


def test_provider_parse_is_case_insensitive() -> None:
    assert Provider.parse(" WordPress ") is Provider.WORDPRESS
    with pytest.raises(ModificationError) as excinfo:
        Provider.parse("drupal")
    assert excinfo.value.kind is ErrorKind.UNSUPPORTED_PROVIDER


def test_connection_from_dict_keeps_provider_unvalidated() -> None:
    connection = CMSConnection.from_dict({"provider": "drupal", "credentials": {"token": "t"}})
    assert connection.provider == "drupal"
    assert connection.credentials == {"token": "t"}


def test_rollback_record_flattens_details() -> None:
    record = RollbackRecord(
        type="wordpress_meta",
        provider="wordpress",
        resource={"kind": "pages", "id": 7},
        original={"title": "Old"},
        details={"alreadyApplied": True, "noop": True},
        rollback_token="rb-9",
    )
    payload = record.to_dict()
    assert payload["type"] == "wordpress_meta"
    assert payload["original"] == {"title": "Old"}
    assert payload["alreadyApplied"] is True
    assert payload["rollbackToken"] == "rb-9"
    assert record.noop


def test_rollback_record_requires_type() -> None:
    with pytest.raises(ValueError):
        RollbackRecord(type="", provider="manual")


def test_result_enforces_exactly_one_outcome() -> None:
    record = RollbackRecord(type="manual", provider="manual")
    error = ModificationError(ErrorKind.CONTENT_NOT_FOUND, "missing")
    with pytest.raises(ValueError):
        ModificationResult(success=True)
    with pytest.raises(ValueError):
        ModificationResult(success=False, rollback_data=record, error=error)

    failed = ModificationResult.failed(error)
    assert failed.error_kind is ErrorKind.CONTENT_NOT_FOUND
    assert failed.to_dict() == {"success": False, "error": {"kind": "ContentNotFound", "message": "missing"}}


def test_changes_metadata_must_be_object() -> None:
    with pytest.raises(ModificationError):
        ModificationChanges.from_dict({"after": "{}", "metadata": ["x"]})
