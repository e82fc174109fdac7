"""Tests for centralized configuration."""

import pytest
from pydantic import ValidationError
from matchclient.config import Settings


class TestSettings:
    def test_required_fields_missing(self, monkeypatch):
        """Client fails clearly if ROOM_ID is not set."""
        monkeypatch.delenv("ROOM_ID", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_minimal_config(self, monkeypatch):
        """Only ROOM_ID is required."""
        monkeypatch.setenv("ROOM_ID", "ABC123")
        monkeypatch.delenv("SEAT", raising=False)
        s = Settings(_env_file=None)
        assert s.room_id == "ABC123"
        assert s.seat == "white"
        assert s.is_creator
        assert s.promotion_piece == "q"
        assert s.channel_timeout == 30.0

    def test_joiner_plays_black(self, monkeypatch):
        monkeypatch.setenv("ROOM_ID", "ABC123")
        monkeypatch.setenv("SEAT", "black")
        s = Settings(_env_file=None)
        assert not s.is_creator

    def test_invalid_seat(self, monkeypatch):
        monkeypatch.setenv("ROOM_ID", "ABC123")
        monkeypatch.setenv("SEAT", "red")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_invalid_promotion_piece(self, monkeypatch):
        monkeypatch.setenv("ROOM_ID", "ABC123")
        monkeypatch.setenv("PROMOTION_PIECE", "k")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_all_fields(self, monkeypatch):
        """All fields can be set explicitly."""
        monkeypatch.setenv("ROOM_ID", "XYZ")
        monkeypatch.setenv("SEAT", "black")
        monkeypatch.setenv("USERNAME", "bob")
        monkeypatch.setenv("PROMOTION_PIECE", "n")
        monkeypatch.setenv("CHANNEL_TIMEOUT", "5.5")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings(_env_file=None)
        assert s.username == "bob"
        assert s.promotion_piece == "n"
        assert s.channel_timeout == 5.5
        assert s.log_level == "DEBUG"
