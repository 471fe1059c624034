"""
Interactive CLI adapter for NanoPrompt.

Architectural role:
- Exposes the gate and workflow from a terminal.
- Delegates every state transition to `nanoprompt.core.workflow.Workflow`.

Interface responsibilities:
- Resolve the API key before anything else (gate first).
- Map local commands to workflow operations.
- Render prompt text, notices and generation status.

Request lifecycle (per command):
1. Read stdin.
2. Dispatch `/command args` to the matching handler.
3. Print the resulting prompt, notice or file path.

Input validation behavior:
- Empty input is ignored.
- Unknown commands print usage.
- Aspect ratio and size are validated against the supported values.

Error handling strategy:
- Key selection failures print the classified message and retry (max 3 attempts).
- File input errors and synthesis failures print a notice; the loop continues.
- EOF and keyboard interrupts terminate the loop without traceback output.

Side effects:
- Reads image files and writes generated images on `/save`.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
import sys

from nanoprompt.api.multimodal.file_input_manager import FileInputError, load_source_image
from nanoprompt.core.credentials import CredentialGate, KeyFileCredentialHost
from nanoprompt.core.types import (
    AspectRatio,
    CredentialError,
    ImageSize,
    InvalidGenerationParameterError,
    SynthesisError,
)
from nanoprompt.core.workflow import Workflow
from nanoprompt.llm.provider_config import BILLING_HELP_URL, DEBUG


logger = logging.getLogger(__name__)

MAX_KEY_ATTEMPTS = 3

HELP_TEXT = (
    "\nCommands:\n"
    " /load <path>      select a source image\n"
    " /describe         reverse-engineer a prompt from the image\n"
    " /show             print the current prompt and settings\n"
    " /edit <text>      replace the prompt text\n"
    f" /ratio <value>    aspect ratio ({', '.join(AspectRatio.values())})\n"
    f" /size <value>     image size ({', '.join(ImageSize.values())})\n"
    " /generate         generate a test image from the prompt\n"
    " /save <path>      write the generated image to disk\n"
    " /clear            drop the generated image\n"
    " exit | quit\n"
)


# =========================================================
# UTF-8 SAFE OUTPUT
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except (AttributeError, ValueError):
        pass


# =========================================================
# GATE
# =========================================================

def ensure_access(gate: CredentialGate, attempts: int = MAX_KEY_ATTEMPTS) -> bool:
    """Return True once the gate is open; prompts for a key when needed."""
    if gate.has_credential():
        return True

    print("To use the Gemini image models you need a key from a billing-enabled project.")
    print(f"Learn more about billing: {BILLING_HELP_URL}\n")

    for _ in range(attempts):
        try:
            gate.request_selection()
            return True
        except CredentialError as err:
            print(err.user_message)

    return False


# =========================================================
# COMMANDS
# =========================================================

def print_state(workflow: Workflow) -> None:
    view = workflow.view()
    source = view.source_image
    print(f"Image:   {source.filename or source.mime_type if source else '(none)'}")
    print(f"Ratio:   {view.aspect_ratio.value}")
    print(f"Size:    {view.image_size.value}")
    print(f"Prompt:  {view.prompt or '(none)'}")
    if view.generated_image is not None:
        stale = " (from an earlier prompt)" if view.image_is_stale else ""
        print(f"Result:  {view.generated_image.mime_type} ready{stale}")


def print_notice(workflow: Workflow) -> None:
    view = workflow.view()
    if view.notice:
        print(f"\n{view.notice}")
        if DEBUG and view.error_detail:
            print(f"Detail: {view.error_detail}")
        workflow.dismiss_notice()


def handle_command(workflow: Workflow, line: str) -> None:
    """Run one CLI command against `workflow`."""
    command, _, arg = line.partition(" ")
    command = command.lower()
    arg = arg.strip()

    if command == "/load":
        if not arg:
            print("Usage: /load <path>")
            return
        try:
            workflow.select_image(load_source_image(arg))
        except FileInputError as err:
            print(f"Could not load image: {err}")
            return
        print("Image loaded. Run /describe to generate a prompt.")

    elif command == "/describe":
        if not workflow.view().has_source_image:
            print("Load an image first (/load <path>).")
            return
        print("Analyzing image...")
        prompt = asyncio.run(workflow.request_prompt())
        if prompt is None:
            print_notice(workflow)
        else:
            print(f"\nPrompt:\n{prompt}")

    elif command == "/show":
        print_state(workflow)

    elif command == "/edit":
        workflow.edit_prompt(arg)
        print("Prompt updated.")

    elif command in ("/ratio", "/size"):
        try:
            if command == "/ratio":
                value = workflow.set_aspect_ratio(arg)
            else:
                value = workflow.set_image_size(arg)
        except InvalidGenerationParameterError as err:
            print(err)
            return
        print(f"Set to {value.value}")

    elif command == "/generate":
        if not workflow.view().prompt:
            print("No prompt yet. Run /describe or /edit first.")
            return
        print("Generating image...")
        artifact = asyncio.run(workflow.request_image())
        if artifact is None:
            print_notice(workflow)
        else:
            print(f"Image ready ({artifact.mime_type}). Use /save <path> to write it.")

    elif command == "/save":
        artifact = workflow.view().generated_image
        if artifact is None:
            print("No generated image to save.")
            return
        if not arg:
            print("Usage: /save <path>")
            return
        try:
            written = artifact.save(arg)
        except (OSError, SynthesisError) as err:
            print(f"Could not save image: {err}")
            return
        print(f"Saved {written} bytes to {arg}")

    elif command == "/clear":
        workflow.clear_generated_image()
        print("Generated image cleared.")

    else:
        print(HELP_TEXT)


# =========================================================
# MAIN
# =========================================================

def main():
    """
    Run the CLI loop.

    Error handling strategy:
    - Gate failure after all attempts aborts startup.
    - EOF/interrupt are handled without stack traces.
    """
    logging.basicConfig(level=logging.DEBUG if DEBUG else logging.WARNING)

    gate = CredentialGate(KeyFileCredentialHost())
    if not ensure_access(gate):
        print("No API key selected. Shutting down.")
        return

    workflow = Workflow()

    print("NanoPrompt started. (Type 'exit' to quit, '/help' for commands)")
    print("-" * 60)

    while True:

        try:
            line = input("> ").strip()

        except EOFError:
            print()
            break

        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not line:
            continue

        if line.lower() in ("exit", "quit"):
            print("Shutting down.")
            break

        handle_command(workflow, line)


if __name__ == "__main__":
    main()
