"""Guess which CMS serves a URL so callers can pick a connection provider.

Each signature contributes a fixed score per matched signal (headers 25,
generator meta 30, asset paths 15, scripts 20, HTML comments 25). The best
score wins when it exceeds ``MATCH_THRESHOLD``; otherwise the site is treated
as ``custom`` and routed to manual mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

import requests
from bs4 import BeautifulSoup, Comment

from sitemod.domain.modifications import Provider
from sitemod.settings import SETTINGS, RuntimeSettings
from sitemod.utils.telemetry import record_event

USER_AGENT = "Mozilla/5.0 (compatible; sitemod-detect/1.0)"
DETECT_TIMEOUT = 10
MATCH_THRESHOLD = 40
CUSTOM = "custom"

HEADER_SCORE = 25
META_SCORE = 30
PATH_SCORE = 15
SCRIPT_SCORE = 20
COMMENT_SCORE = 25


@dataclass(frozen=True)
class Signature:
    headers: Tuple[Tuple[str, str], ...] = ()
    generator: Tuple[str, ...] = ()
    paths: Tuple[str, ...] = ()
    scripts: Tuple[str, ...] = ()
    comments: Tuple[str, ...] = ()


SIGNATURES: Dict[str, Signature] = {
    "wordpress": Signature(
        headers=(("x-powered-by", "php"), ("link", "wp-json")),
        generator=("wordpress",),
        paths=("/wp-content/", "/wp-includes/", "/wp-admin/"),
        scripts=("wp-includes", "wp-content"),
        comments=("this site is optimized by the yoast seo plugin",),
    ),
    "shopify": Signature(
        headers=(("x-shopid", ""), ("x-shopify-stage", "")),
        generator=("shopify",),
        paths=("/cdn/shop/", "/_shopify/"),
        scripts=("cdn.shopify.com", "shopify"),
        comments=("begin shopify",),
    ),
    "webflow": Signature(
        headers=(("x-wf-", ""),),
        generator=("webflow",),
        paths=("/webflow-style/", "website-files.com"),
        scripts=("webflow.js", "webflow"),
        comments=("webflow",),
    ),
    "squarespace": Signature(
        headers=(("server", "squarespace"),),
        generator=("squarespace",),
        paths=("/universal/", "static1.squarespace.com"),
        scripts=("squarespace",),
        comments=("squarespace",),
    ),
    "wix": Signature(
        headers=(("x-wix-request-id", ""),),
        generator=("wix.com",),
        paths=("/_partials/", "static.wixstatic.com"),
        scripts=("wix.js", "wixapps", "parastorage"),
        comments=("wix",),
    ),
    "hubspot": Signature(
        headers=(("x-powered-by", "hubspot"), ("x-hs-", "")),
        generator=("hubspot",),
        paths=("/hubfs/", "/hs/"),
        scripts=("hs-scripts.com", "hubspot"),
        comments=("hubspot",),
    ),
}

_PROVIDERS = {
    "wordpress": Provider.WORDPRESS,
    "shopify": Provider.SHOPIFY,
    "webflow": Provider.WEBFLOW,
    "squarespace": Provider.SQUARESPACE,
}


@dataclass(frozen=True)
class DetectionResult:
    cms: str
    confidence: int
    detected_by: List[str] = field(default_factory=list)
    url: str = ""

    @property
    def provider(self) -> Provider:
        return _PROVIDERS.get(self.cms, Provider.MANUAL)

    def to_dict(self) -> Dict[str, object]:
        return {
            "url": self.url,
            "cms": self.cms,
            "confidence": self.confidence,
            "detectedBy": list(self.detected_by),
            "provider": self.provider.value,
        }


class CMSDetector:
    def __init__(
        self,
        settings: RuntimeSettings = SETTINGS,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def detect(self, url: str) -> DetectionResult:
        url = normalise_url(url)
        try:
            response = self._session.request(
                "GET",
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=DETECT_TIMEOUT,
            )
        except requests.RequestException as exc:
            return self._fallback(url, f"fetch failed: {exc.__class__.__name__}")
        if response.status_code >= 400:
            return self._fallback(url, f"fetch failed: HTTP {response.status_code}")
        result = classify(response.text or "", response.headers or {}, url=url)
        record_event(
            self._settings,
            "detect.cms",
            payload={"url": url, "cms": result.cms, "confidence": result.confidence},
            status="success",
            component="detector",
        )
        return result

    def _fallback(self, url: str, reason: str) -> DetectionResult:
        record_event(
            self._settings,
            "detect.cms",
            payload={"url": url, "reason": reason},
            level="warn",
            status="failure",
            component="detector",
        )
        return DetectionResult(cms=CUSTOM, confidence=0, detected_by=[f"Detection failed ({reason}); assuming custom site"], url=url)


def normalise_url(url: str) -> str:
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def classify(html: str, headers: Mapping[str, str], *, url: str = "") -> DetectionResult:
    """Score ``html`` and ``headers`` against every signature; pure."""

    soup = BeautifulSoup(html, "html.parser")
    lowered_html = html.lower()
    lowered_headers = {str(key).lower(): str(value).lower() for key, value in dict(headers).items()}
    generators = [
        str(tag.get("content") or "").lower()
        for tag in soup.find_all("meta", attrs={"name": lambda value: value and value.lower() == "generator"})
    ]
    script_sources = [str(tag.get("src") or "").lower() for tag in soup.find_all("script")]
    inline_scripts = [(tag.string or "").lower() for tag in soup.find_all("script") if not tag.get("src")]
    comments = [str(text).lower() for text in soup.find_all(string=lambda node: isinstance(node, Comment))]

    best_cms, best_score = CUSTOM, 0
    best_signals: List[str] = []
    for cms, signature in SIGNATURES.items():
        score = 0
        signals: List[str] = []
        for name, expected in signature.headers:
            if _header_matches(lowered_headers, name, expected):
                score += HEADER_SCORE
                signals.append(f"Header: {name}{': ' + expected if expected else ''}")
        for needle in signature.generator:
            if any(needle in content for content in generators):
                score += META_SCORE
                signals.append(f"Meta: generator {needle}")
        for path in signature.paths:
            if path in lowered_html:
                score += PATH_SCORE
                signals.append(f"Path: {path}")
        for needle in signature.scripts:
            if any(needle in src for src in script_sources) or any(needle in body for body in inline_scripts):
                score += SCRIPT_SCORE
                signals.append(f"Script: {needle}")
        for needle in signature.comments:
            if any(needle in comment for comment in comments):
                score += COMMENT_SCORE
                signals.append(f"Comment: {needle}")
        if score > best_score:
            best_cms, best_score, best_signals = cms, score, signals

    if best_score <= MATCH_THRESHOLD:
        return DetectionResult(cms=CUSTOM, confidence=min(100, best_score), detected_by=best_signals, url=url)
    return DetectionResult(cms=best_cms, confidence=min(100, best_score), detected_by=best_signals, url=url)


def _header_matches(headers: Mapping[str, str], name: str, expected: str) -> bool:
    # Names ending in "-" match any header with that prefix.
    if name.endswith("-"):
        return any(key.startswith(name) and expected in value for key, value in headers.items())
    value = headers.get(name)
    return value is not None and expected in value


__all__ = ["CMSDetector", "DetectionResult", "SIGNATURES", "classify", "normalise_url"]
