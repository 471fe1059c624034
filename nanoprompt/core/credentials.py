"""Credential gate guarding every model call.

Architectural role:
    Decides whether an API key is bound to the running session and, when it is
    not, triggers the host's key-selection flow.

State model:
    UNKNOWN --query(True)--> GRANTED
    UNKNOWN --query(False)--> DENIED
    DENIED  --selection returns--> GRANTED
    DENIED  --selection raises--> DENIED (error attached)
    GRANTED is terminal for the session.

Selection contract:
    The host gives no reliable completion signal for its selection flow, so a
    selection that returns without raising is taken as success immediately. The
    gate does not poll, delay, or re-query the host afterwards.

Error handling strategy:
    - `has_credential` never raises; host failures are logged and read as "no key".
    - `request_selection` classifies host failures into `InvalidProjectError` or
      `SelectionFailedError`, stores the error for display, and re-raises it.
"""

import getpass
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from nanoprompt.core.types import (
    CredentialError,
    InvalidProjectError,
    SelectionFailedError,
)
from nanoprompt.llm.provider_config import GEMINI_KEY_FILE, load_key, store_key


logger = logging.getLogger(__name__)

INVALID_PROJECT_MARKER = "Requested entity was not found"


class CredentialHost(Protocol):
    """Host capability that owns key selection."""

    def has_selected_api_key(self) -> bool:
        """Return whether a key is already bound."""
        ...

    def open_select_key(self) -> None:
        """Run the interactive selection flow; may raise."""
        ...


class KeyFileCredentialHost:
    """Default host backed by `GEMINI_API_KEY` / the configured key file.

    `selector` supplies a key when selection is requested (a terminal prompt for
    the CLI, the request body for the HTTP API). The chosen key is bound to the
    process environment, and written to the key file when `persist` is set.
    """

    def __init__(
        self,
        selector: Optional[Callable[[], str]] = None,
        key_file: str = GEMINI_KEY_FILE,
        persist: bool = False,
    ):
        self.selector = selector or prompt_for_key
        self.key_file = key_file
        self.persist = persist

    def has_selected_api_key(self) -> bool:
        return bool(load_key(self.key_file))

    def open_select_key(self) -> None:
        api_key = (self.selector() or "").strip()
        if not api_key:
            raise ValueError("No API key was provided")
        store_key(api_key, self.key_file, persist=self.persist)


def prompt_for_key() -> str:
    """Read a key from the terminal without echoing it."""
    return getpass.getpass("Gemini API key: ")


class GateState(str, Enum):
    UNKNOWN = "unknown"
    DENIED = "denied"
    GRANTED = "granted"


def classify_selection_error(err: BaseException) -> CredentialError:
    """Map a host failure to the user-facing credential error."""
    if INVALID_PROJECT_MARKER in str(err):
        return InvalidProjectError(cause=err)
    return SelectionFailedError(cause=err)


class CredentialGate:
    """One-way gate in front of the workflow."""

    def __init__(self, host: CredentialHost):
        self._host = host
        self._state = GateState.UNKNOWN
        self._error: Optional[CredentialError] = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def granted(self) -> bool:
        return self._state is GateState.GRANTED

    @property
    def error(self) -> Optional[CredentialError]:
        return self._error

    def has_credential(self) -> bool:
        """Query the host for an already-bound key.

        Never raises. A granted gate answers `True` without asking the host again.
        """
        if self.granted:
            return True

        try:
            found = bool(self._host.has_selected_api_key())
        except Exception:
            logger.exception("Error checking API key")
            found = False

        self._state = GateState.GRANTED if found else GateState.DENIED
        return found

    def request_selection(self) -> None:
        """Trigger the host selection flow and open the gate when it returns.

        Raises:
            InvalidProjectError: the host reported a nonexistent project.
            SelectionFailedError: any other host failure.
        """
        if self.granted:
            return

        self._error = None
        try:
            self._host.open_select_key()
        except Exception as err:
            logger.error("Selection failed: %s", err)
            self._error = classify_selection_error(err)
            self._state = GateState.DENIED
            raise self._error from err

        self._state = GateState.GRANTED
        logger.info("API key selected; access granted")
