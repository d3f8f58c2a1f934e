"""Core functionality for yacht photo generation.

This module provides the pieces the API and UI layers are built from:

- **YachtshotConfig / config**: Configuration management using Pydantic Settings
- **ImagePayload**: Normalised in-memory image (bytes + media type)
- **ModelManager**: google-genai client lifecycle and request assembly
- **build_prompt**: Edit/composite instruction compilation
- **extract_image**: Ordered extraction of an image from a model response

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration, YACHTSHOT_ prefix, .env support

2. **Codec and Transport** (data_url.py, fetcher.py):
   - Data URL parsing/serialisation
   - Uncached image downloads over a shared httpx client

3. **Model Layer** (model_manager.py, extraction.py):
   - Remote model invocation with a deadline
   - Response normalisation and image extraction

4. **Errors** (errors.py):
   - Closed error-kind taxonomy with structured fields
"""

from yachtshot.core.config import YachtshotConfig, config
from yachtshot.core.data_url import ImagePayload
from yachtshot.core.extraction import NOT_FOUND, Found, extract_image
from yachtshot.core.model_manager import ModelManager, ModelResponse
from yachtshot.core.prompt_builder import build_prompt

__all__ = [
    "Found",
    "ImagePayload",
    "ModelManager",
    "ModelResponse",
    "NOT_FOUND",
    "YachtshotConfig",
    "build_prompt",
    "config",
    "extract_image",
]
