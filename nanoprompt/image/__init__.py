"""Image generation adapter package.

Scope:
    Provides the Gemini image-model client and the image synthesizer used by the
    workflow orchestrator once a prompt exists.

Non-goals:
    - No file ingestion (see `nanoprompt.api.multimodal`).
    - No retry, caching or polling.
"""
