"""Gemini model access package.

Architectural role:
    Provides provider configuration, request-payload construction, and transport
    adapters used by the workflow orchestrator to invoke Gemini models.

Module split:
    - `provider_config`: environment-driven endpoint, model and key configuration.
    - `service`: prompt synthesizer (image -> prompt text).
    - `client`: `generateContent` HTTP transport and response helpers.
"""
