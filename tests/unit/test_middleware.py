"""Unit tests for the Content-Security-Policy builder."""

from chatline.config import settings
from chatline.middleware import build_content_security_policy


def test_development_policy_allows_localhost(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    policy = build_content_security_policy()

    assert "connect-src 'self' http://localhost:*" in policy
    assert "ws://localhost:*" in policy


def test_production_policy_allows_api_url(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    monkeypatch.setattr(settings, "API_URL", "https://api.chatline.example")
    policy = build_content_security_policy()

    assert "connect-src 'self' https://api.chatline.example;" in policy
    assert "localhost" not in policy


def test_policy_allows_cdn_images():
    policy = build_content_security_policy()
    assert "img-src 'self' https://*.cloudfront.net" in policy
    assert "font-src 'self' https://fonts.googleapis.com data:" in policy
