"""NanoPrompt: reverse-engineer image-generation prompts from images."""

__version__ = "0.1.0"
