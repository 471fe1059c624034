"""Tests for the credential gate and the key-file host."""

from __future__ import annotations

import os

import pytest

from nanoprompt.core.credentials import (
    CredentialGate,
    GateState,
    KeyFileCredentialHost,
)
from nanoprompt.core.types import InvalidProjectError, SelectionFailedError


class FakeHost:
    def __init__(self, has_key=False, select_error=None, check_error=None):
        self.has_key = has_key
        self.select_error = select_error
        self.check_error = check_error
        self.checks = 0
        self.selections = 0

    def has_selected_api_key(self):
        self.checks += 1
        if self.check_error:
            raise self.check_error
        return self.has_key

    def open_select_key(self):
        self.selections += 1
        if self.select_error:
            raise self.select_error


class TestCredentialGate:
    def test_starts_unknown(self):
        assert CredentialGate(FakeHost()).state is GateState.UNKNOWN

    def test_query_grants_when_key_present(self):
        gate = CredentialGate(FakeHost(has_key=True))
        assert gate.has_credential() is True
        assert gate.state is GateState.GRANTED

    def test_query_denies_when_key_absent(self):
        gate = CredentialGate(FakeHost())
        assert gate.has_credential() is False
        assert gate.state is GateState.DENIED

    def test_query_failure_is_not_raised(self):
        gate = CredentialGate(FakeHost(check_error=RuntimeError("host down")))
        assert gate.has_credential() is False
        assert gate.state is GateState.DENIED
        assert gate.error is None

    def test_selection_assumes_success_without_recheck(self):
        host = FakeHost()
        gate = CredentialGate(host)
        gate.has_credential()

        gate.request_selection()

        assert gate.granted
        assert host.selections == 1
        # no re-verification after the selection returned
        assert host.checks == 1

    def test_granted_is_permanent(self):
        host = FakeHost(has_key=True)
        gate = CredentialGate(host)
        gate.has_credential()

        host.has_key = False
        host.check_error = RuntimeError("boom")
        assert gate.has_credential() is True
        gate.request_selection()
        assert gate.state is GateState.GRANTED
        assert host.selections == 0

    def test_not_found_message_yields_invalid_project(self):
        host = FakeHost(select_error=RuntimeError("Requested entity was not found."))
        gate = CredentialGate(host)
        gate.has_credential()

        with pytest.raises(InvalidProjectError) as excinfo:
            gate.request_selection()

        assert gate.state is GateState.DENIED
        assert gate.error is excinfo.value
        assert "project was not found" in excinfo.value.user_message

    def test_other_failures_yield_selection_failed(self):
        gate = CredentialGate(FakeHost(select_error=RuntimeError("popup closed")))

        with pytest.raises(SelectionFailedError) as excinfo:
            gate.request_selection()

        assert not gate.granted
        assert excinfo.value.user_message == "Failed to select API key. Please try again."

    def test_retry_after_failure_can_grant(self):
        host = FakeHost(select_error=RuntimeError("popup closed"))
        gate = CredentialGate(host)
        with pytest.raises(SelectionFailedError):
            gate.request_selection()

        host.select_error = None
        gate.request_selection()

        assert gate.granted
        assert gate.error is None


class TestKeyFileCredentialHost:
    def test_key_from_environment(self, tmp_path):
        host = KeyFileCredentialHost(key_file=str(tmp_path / "gemini.key"))
        assert host.has_selected_api_key() is True

    def test_key_from_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY")
        key_file = tmp_path / "gemini.key"
        host = KeyFileCredentialHost(key_file=str(key_file))
        assert host.has_selected_api_key() is False

        key_file.write_text("file-key\n")
        assert host.has_selected_api_key() is True

    def test_selection_binds_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY")
        key_file = tmp_path / "nested" / "gemini.key"
        host = KeyFileCredentialHost(
            selector=lambda: "  chosen-key  ",
            key_file=str(key_file),
            persist=True,
        )

        host.open_select_key()

        assert os.environ["GEMINI_API_KEY"] == "chosen-key"
        assert key_file.read_text() == "chosen-key"

    def test_empty_selection_raises(self, tmp_path):
        host = KeyFileCredentialHost(selector=lambda: "", key_file=str(tmp_path / "g.key"))
        gate = CredentialGate(host)
        with pytest.raises(SelectionFailedError):
            gate.request_selection()
