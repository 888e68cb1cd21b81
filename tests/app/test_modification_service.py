from __future__ import annotations

import json

import pytest

from sitemod.app.modifications import ModificationService
from sitemod.domain.modifications import (
    ActionType,
    CMSConnection,
    ErrorKind,
    ModificationChanges,
    ModificationRequest,
)
from sitemod.settings import RuntimeSettings
from sitemod.utils.telemetry import iter_events
from tests._doubles import DummyResponse, DummySession, ok

WEBFLOW_API = "https://api.webflow.com"
WP_API = "https://acme.test/wp-json/wp/v2"
WP_CREDENTIALS = {"domain": "acme.test", "username": "editor", "applicationPassword": "pw"}


def _request(action: str, target: str, after: str, before: str = "") -> ModificationRequest:
    return ModificationRequest(
        project_id="proj-1",
        action_type=ActionType.parse(action),
        target=target,
        changes=ModificationChanges(before=before, after=after),
        rollback_token="rb-42",
    )


def _service(settings, session: DummySession) -> ModificationService:
    return ModificationService(settings, session=session)  # type: ignore[arg-type]


def test_manual_meta_returns_instructions(settings) -> None:
    session = DummySession()
    after = '{"title":"Acme — Widgets","description":"Best widgets"}'
    result = _service(settings, session).apply(_request("meta", "homepage", after), CMSConnection("manual"))

    assert result.success
    assert "Acme — Widgets" in result.instructions
    assert "Best widgets" in result.instructions
    assert result.rollback_data.type == "manual"
    assert session.calls == []


def test_manual_mode_survives_unparseable_payload(settings) -> None:
    result = _service(settings, DummySession()).apply(
        _request("heading", "about-us", "About Acme", before="Welcome"),
        CMSConnection("manual"),
    )
    assert result.success
    assert '"About Acme"' in result.instructions


def test_webflow_expired_token_is_auth_expired(settings) -> None:
    session = DummySession({("GET", f"{WEBFLOW_API}/sites/X"): DummyResponse(401, {"msg": "token expired"})})
    connection = CMSConnection("webflow", {"siteId": "X", "accessToken": "expired"})
    result = _service(settings, session).apply(_request("heading", "about-us", '{"h1":"About Acme"}'), connection)

    assert not result.success
    assert result.error_kind is ErrorKind.AUTH_EXPIRED
    assert result.rollback_data is None
    assert result.instructions is None


def test_wordpress_alt_text_without_media_is_content_not_found(settings) -> None:
    session = DummySession(
        {
            ("GET", f"{WP_API}/users/me"): ok({"id": 1}),
            ("GET", f"{WP_API}/media"): ok([]),
        }
    )
    connection = CMSConnection("wordpress", WP_CREDENTIALS)
    result = _service(settings, session).apply(
        _request("altText", "/uploads/hero.jpg", '{"altText": "Hero"}'),
        connection,
    )

    assert not result.success
    assert result.error_kind is ErrorKind.CONTENT_NOT_FOUND


def test_webflow_sitemap_is_noop_success(settings) -> None:
    session = DummySession()
    connection = CMSConnection("webflow", {"siteId": "X", "accessToken": "t"})
    result = _service(settings, session).apply(_request("sitemap", "/", ""), connection)

    assert result.success
    assert result.rollback_data.noop
    assert "automatically" in result.rollback_data.details["message"]
    assert session.calls == []


def test_shopify_internal_links_unsupported_with_instructions(settings) -> None:
    session = DummySession()
    connection = CMSConnection("shopify", {"shop": "acme-store", "accessToken": "shpat"})
    after = json.dumps({"links": [{"anchor": "blue widgets", "url": "/products/blue-widget"}]})
    result = _service(settings, session).apply(_request("internalLinks", "pages/about", after), connection)

    assert not result.success
    assert result.error_kind is ErrorKind.UNSUPPORTED_ACTION
    assert '- Link the text "blue widgets" to /products/blue-widget' in result.instructions
    assert session.calls == []


def test_squarespace_fails_with_instructions(settings) -> None:
    result = _service(settings, DummySession()).apply(
        _request("meta", "homepage", '{"title": "Acme"}'),
        CMSConnection("squarespace", {}),
    )
    assert not result.success
    assert result.error_kind is ErrorKind.UNSUPPORTED_PROVIDER
    assert '"Acme"' in result.instructions


def test_unknown_provider_is_unsupported(settings) -> None:
    session = DummySession()
    result = _service(settings, session).apply(_request("meta", "homepage", '{"title": "Acme"}'), CMSConnection("drupal"))
    assert result.error_kind is ErrorKind.UNSUPPORTED_PROVIDER
    assert session.calls == []


@pytest.mark.parametrize(
    "provider, credentials",
    [
        ("webflow", {"siteId": "X"}),
        ("webflow", {"accessToken": "t", "refreshToken": "r"}),
        ("wordpress", {"domain": "acme.test", "username": "editor"}),
        ("wordpress", {"username": "editor", "applicationPassword": "pw"}),
        ("shopify", {"shop": "acme-store"}),
        ("shopify", {}),
    ],
)
def test_credential_gate_issues_no_requests(settings, provider: str, credentials: dict) -> None:
    session = DummySession()
    result = _service(settings, session).apply(
        _request("heading", "about-us", '{"h1": "About Acme"}'),
        CMSConnection(provider, credentials),
    )
    assert result.error_kind is ErrorKind.MISSING_CREDENTIALS
    assert session.calls == []


def test_invalid_payload_fails_before_network(settings) -> None:
    session = DummySession()
    connection = CMSConnection("wordpress", WP_CREDENTIALS)
    result = _service(settings, session).apply(_request("meta", "homepage", "{not json"), connection)
    assert result.error_kind is ErrorKind.INVALID_PAYLOAD
    assert session.calls == []


def test_backend_failure_passes_through_with_status(settings) -> None:
    page = {"id": 5, "title": {"raw": "Old"}, "meta": {}}
    session = DummySession(
        {
            ("GET", f"{WP_API}/users/me"): ok({"id": 1}),
            ("GET", f"{WP_API}/posts/5"): ok(page),
            ("POST", f"{WP_API}/posts/5"): DummyResponse(403, {"code": "rest_cannot_edit"}),
        }
    )
    result = _service(settings, session).apply(
        _request("meta", "posts/5", '{"title": "New"}'),
        CMSConnection("wordpress", WP_CREDENTIALS),
    )
    assert result.error_kind is ErrorKind.BACKEND_WRITE_FAILED
    assert result.error.status == 403
    assert "rest_cannot_edit" in result.error.detail


def test_apply_dict_maps_malformed_documents(settings) -> None:
    service = _service(settings, DummySession())
    result = service.apply_dict({"actionType": "teleport", "target": "/"}, {"provider": "manual"})
    assert result.error_kind is ErrorKind.INVALID_PAYLOAD

    ok_result = service.apply_dict(
        {"actionType": "altText", "target": "hero.jpg", "changes": {"after": {"altText": "Hero"}}},
        {"provider": "manual"},
    )
    assert ok_result.success
    assert ok_result.to_dict()["rollbackData"]["type"] == "manual"


def test_apply_records_telemetry_event(settings) -> None:
    service = _service(settings, DummySession())
    service.apply(_request("meta", "homepage", '{"title": "Acme"}'), CMSConnection("manual"))
    service.apply(_request("meta", "homepage", '{"title": "Acme"}'), CMSConnection("drupal"))

    events = [evt for evt in iter_events(settings) if evt["event"] == "modification.apply"]
    assert [evt["status"] for evt in events] == ["success", "failure"]
    assert events[0]["correlationId"] == "rb-42"
    assert events[0]["payload"]["rollbackType"] == "manual"
    assert events[1]["payload"]["errorKind"] == "UnsupportedProvider"
    assert events[1]["level"] == "error"


def test_check_connection(settings) -> None:
    session = DummySession({("GET", f"{WP_API}/users/me"): DummyResponse(401, {"code": "invalid_auth"})})
    service = _service(settings, session)

    failed = service.check_connection(CMSConnection("wordpress", WP_CREDENTIALS))
    assert not failed.ok
    assert failed.error.kind is ErrorKind.AUTH_EXPIRED
    assert service.check_connection(CMSConnection("manual")).ok
    assert service.check_connection(CMSConnection("drupal")).to_dict()["error"]["kind"] == "UnsupportedProvider"


def _unwritable_settings(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied", encoding="utf-8")
    home = tmp_path / "home"
    return RuntimeSettings(
        home_dir=home,
        state_dir=home / "state",
        log_dir=blocker / "logs",
        request_timeout=5,
    )


def test_unwritable_telemetry_keeps_rollback_record(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    media = {"id": 44, "alt_text": "", "source_url": "https://acme.test/wp-content/uploads/hero.jpg"}
    session = DummySession(
        {
            ("GET", f"{WP_API}/users/me"): ok({"id": 1}),
            ("GET", f"{WP_API}/media/44"): ok(media),
            ("POST", f"{WP_API}/media/44"): ok(dict(media, alt_text="Acme hero")),
        }
    )
    service = _service(_unwritable_settings(tmp_path), session)
    result = service.apply(
        _request("altText", "media/44", '{"altText": "Acme hero"}'),
        CMSConnection("wordpress", WP_CREDENTIALS),
    )

    assert result.success
    assert result.rollback_data.type == "wordpress_media"
    assert result.rollback_data.original == {"alt_text": ""}
    assert [call[1] for call in session.writes()] == [f"{WP_API}/media/44"]
    assert "telemetry event 'modification.apply' not recorded" in capsys.readouterr().err


def test_malformed_backend_body_is_backend_write_failed(settings) -> None:
    shopify_api = "https://acme-store.myshopify.com/admin/api/2023-10"
    session = DummySession(
        {
            ("GET", f"{shopify_api}/shop.json"): ok({"shop": {"id": 1}}),
            ("GET", f"{shopify_api}/products/101.json"): ok({"product": {"id": "not-a-number"}}),
        }
    )
    result = _service(settings, session).apply(
        _request("heading", "products/101", '{"h1": "Blue Widget"}'),
        CMSConnection("shopify", {"shop": "acme-store", "accessToken": "shpat"}),
    )

    assert not result.success
    assert result.error_kind is ErrorKind.BACKEND_WRITE_FAILED
    assert result.error.detail.startswith("ValueError")
    assert session.writes() == []


def test_non_object_listing_entries_are_skipped(settings) -> None:
    page = {"id": 7, "slug": "about-us", "content": {"raw": "<h1>About</h1>"}}
    session = DummySession(
        {
            ("GET", f"{WP_API}/users/me"): ok({"id": 1}),
            ("GET", f"{WP_API}/posts"): ok(["unexpected", None]),
            ("GET", f"{WP_API}/pages"): ok([page]),
            ("POST", f"{WP_API}/pages/7"): ok(page),
        }
    )
    result = _service(settings, session).apply(
        _request("heading", "about-us", '{"h1": "About Acme"}'),
        CMSConnection("wordpress", WP_CREDENTIALS),
    )

    assert result.success
    assert result.rollback_data.resource["id"] == 7
