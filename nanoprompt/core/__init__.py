"""Core orchestration package.

Architectural role:
    Exposes the session layer that sits between API/CLI entrypoints and the
    Gemini synthesizers.

Composition:
    - `credentials`: one-way API-key gate in front of every model call.
    - `workflow`: source image -> prompt -> generated image state machine.
    - `types`: shared enumerations, image records and error taxonomy.

Determinism and side effects:
    Package import itself is deterministic and side-effect free. Runtime side effects
    are performed by `workflow` during request processing.
"""
