from __future__ import annotations

import identity


def test_environment_wins(monkeypatch) -> None:
    monkeypatch.setattr(identity, "load_dotenv", lambda: None)
    monkeypatch.setenv("SPANSCOPE_ANNOTATOR", " alice ")

    assert identity.resolve_annotator("bob") == "alice"


def test_configured_value_is_used(monkeypatch) -> None:
    monkeypatch.setattr(identity, "load_dotenv", lambda: None)
    monkeypatch.delenv("SPANSCOPE_ANNOTATOR", raising=False)

    assert identity.build_review_config("bob").annotator == "bob"


def test_falls_back_to_os_user(monkeypatch) -> None:
    monkeypatch.setattr(identity, "load_dotenv", lambda: None)
    monkeypatch.delenv("SPANSCOPE_ANNOTATOR", raising=False)
    monkeypatch.setattr(identity.getpass, "getuser", lambda: "carol")

    assert identity.resolve_annotator(None) == "carol"
