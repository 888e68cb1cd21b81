from __future__ import annotations

import base64

import pytest

from sitemod.adapters.cms.credentials import clean_domain, require_fields, shop_subdomain, wordpress_auth
from sitemod.domain.modifications import ErrorKind, ModificationError, Provider


def test_require_fields_names_every_missing_field() -> None:
    with pytest.raises(ModificationError) as excinfo:
        require_fields(Provider.WEBFLOW, {"siteId": "  "}, ["siteId", "accessToken"])
    assert excinfo.value.kind is ErrorKind.MISSING_CREDENTIALS
    assert "siteId, accessToken" in excinfo.value.message


def test_domain_helpers_strip_scheme_and_suffix() -> None:
    assert clean_domain("https://acme.test/") == "acme.test"
    assert shop_subdomain("https://acme-store.myshopify.com") == "acme-store"
    assert shop_subdomain("acme-store") == "acme-store"


def test_wordpress_application_password_is_basic_auth() -> None:
    auth = wordpress_auth({"username": "editor", "applicationPassword": "abcd efgh"})
    expected = base64.b64encode(b"editor:abcd efgh").decode("ascii")
    assert auth.method == "application_password"
    assert auth.header == f"Basic {expected}"


def test_wordpress_auth_method_can_prefer_jwt() -> None:
    creds = {"username": "editor", "applicationPassword": "pw", "jwt": "token", "authMethod": "jwt"}
    assert wordpress_auth(creds).header == "Bearer token"
    assert wordpress_auth({"jwt": "token"}).method == "jwt"


@pytest.mark.parametrize(
    "credentials, missing",
    [
        ({"username": "editor"}, "applicationPassword"),
        ({"applicationPassword": "pw"}, "username"),
        ({}, "username, applicationPassword, jwt"),
    ],
)
def test_wordpress_auth_reports_missing_fields(credentials: dict, missing: str) -> None:
    with pytest.raises(ModificationError) as excinfo:
        wordpress_auth(credentials)
    assert excinfo.value.kind is ErrorKind.MISSING_CREDENTIALS
    assert excinfo.value.message.endswith(missing)
