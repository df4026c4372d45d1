"""
Inference Backends Module

The generation session talks to a language model through the
``InferenceBackend`` interface. Adapters translate engine-specific failures
at this boundary: a lost or disposed compute context is raised as
``BackendLost`` so the session can branch on the error kind.

Shipped adapters:
- LlamaCppBackend: on-device GGUF model via llama-cpp-python
- GeminiBackend: Google Gemini API via google-generativeai
"""
import asyncio
import os
import re
import threading
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol

import google.generativeai as genai
from dotenv import load_dotenv

from .data_models import ASSISTANT, SYSTEM, InitProgress
from .errors import BackendLost
from .logger import get_logger
from .settings import RAGConfig

logger = get_logger(__name__)

Messages = List[Dict[str, str]]
InitProgressCallback = Callable[[InitProgress], None]

# Failure messages that mean the model's compute context is gone
_CONTEXT_LOSS_RE = re.compile(r"disposed|context (?:was )?lost|device lost", re.IGNORECASE)


class InferenceBackend(Protocol):
    """A constructed language model handle."""

    def stream_chat(self, messages: Messages, temperature: float) -> AsyncIterator[str]:
        """Yield text deltas until completion or interruption."""
        ...

    async def interrupt(self) -> None:
        """Ask the in-flight generation to stop."""
        ...

    def dispose(self) -> None:
        """Release engine resources. Later requests raise ``BackendLost``."""
        ...


BackendFactory = Callable[[str, Optional[InitProgressCallback]], Awaitable[InferenceBackend]]


def is_context_loss(exc: BaseException) -> bool:
    """True if an engine failure means the compute context was invalidated."""
    return bool(_CONTEXT_LOSS_RE.search(str(exc)))


def _notify(callback: Optional[InitProgressCallback], text: str, progress: float) -> None:
    if callback is not None:
        callback(InitProgress(text=text, progress=progress))


class LlamaCppBackend:
    """
    On-device inference using llama.cpp.

    Tokens are pulled from the llama.cpp stream in a worker thread so the
    event loop stays responsive; ``interrupt`` stops the pull between tokens.
    """

    def __init__(self, llm, max_tokens: int = 1024):
        self._llm = llm
        self.max_tokens = max_tokens
        self._stop = threading.Event()

    @classmethod
    async def create(
        cls,
        model_path: str,
        on_progress: Optional[InitProgressCallback] = None,
        n_ctx: int = 4096,
        n_threads: int = 4,
        max_tokens: int = 1024,
    ) -> "LlamaCppBackend":
        """
        Load a GGUF model.

        Args:
            model_path: Path to the GGUF model file
            on_progress: Optional construction progress callback
            n_ctx: Context window size
            n_threads: Number of CPU threads for inference
            max_tokens: Maximum tokens per response
        """
        from llama_cpp import Llama

        if not Path(model_path).exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        _notify(on_progress, f"Loading model {Path(model_path).name}...", 0.0)
        llm = await asyncio.to_thread(
            Llama,
            model_path=model_path,
            n_ctx=n_ctx,
            n_threads=n_threads,
            verbose=False,
        )
        logger.info("Loaded llama.cpp model %s (n_ctx=%d)", model_path, n_ctx)
        _notify(on_progress, "Model loaded", 1.0)
        return cls(llm, max_tokens=max_tokens)

    @property
    def is_disposed(self) -> bool:
        return self._llm is None

    def dispose(self) -> None:
        """Release the model context. Later requests raise ``BackendLost``."""
        llm, self._llm = self._llm, None
        if llm is not None:
            llm.close()

    async def stream_chat(self, messages: Messages, temperature: float) -> AsyncIterator[str]:
        if self.is_disposed:
            raise BackendLost("Model context has been disposed")

        self._stop.clear()
        try:
            stream = self._llm.create_chat_completion(
                messages=messages,
                temperature=temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )
            try:
                while not self._stop.is_set():
                    chunk = await asyncio.to_thread(next, stream, None)
                    if chunk is None:
                        break
                    delta = chunk["choices"][0]["delta"].get("content")
                    if delta:
                        yield delta
            finally:
                stream.close()
        except Exception as exc:
            if self.is_disposed or is_context_loss(exc):
                raise BackendLost(str(exc)) from exc
            raise

    async def interrupt(self) -> None:
        self._stop.set()


class GeminiBackend:
    """Hosted inference using the Gemini API."""

    def __init__(self, model_name: str, max_tokens: int = 1024):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._stopped = False
        self._disposed = False

    @classmethod
    async def create(
        cls,
        model_name: str,
        on_progress: Optional[InitProgressCallback] = None,
        api_key: Optional[str] = None,
        max_tokens: int = 1024,
    ) -> "GeminiBackend":
        """
        Configure the Gemini client.

        Args:
            model_name: Gemini model name
            on_progress: Optional construction progress callback
            api_key: Gemini API key (or set GEMINI_API_KEY env var)
            max_tokens: Maximum tokens per response
        """
        load_dotenv()
        api_key = api_key or os.getenv('GEMINI_API_KEY')
        if not api_key:
            raise ValueError(
                "Gemini API key not found. Set GEMINI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        _notify(on_progress, f"Connecting to {model_name}...", 0.0)
        genai.configure(api_key=api_key)
        logger.info("Configured Gemini backend: %s", model_name)
        _notify(on_progress, "Model ready", 1.0)
        return cls(model_name, max_tokens=max_tokens)

    @staticmethod
    def _to_contents(messages: Messages):
        system = "\n\n".join(m["content"] for m in messages if m["role"] == SYSTEM)
        contents = [
            {"role": "model" if m["role"] == ASSISTANT else "user", "parts": [m["content"]]}
            for m in messages
            if m["role"] != SYSTEM
        ]
        return system or None, contents

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Drop the handle. The API client itself holds no per-handle resources."""
        self._disposed = True

    async def stream_chat(self, messages: Messages, temperature: float) -> AsyncIterator[str]:
        if self._disposed:
            raise BackendLost("Gemini backend has been disposed")
        self._stopped = False
        system_instruction, contents = self._to_contents(messages)

        model = genai.GenerativeModel(self.model_name, system_instruction=system_instruction)
        generation_config = genai.GenerationConfig(
            temperature=temperature,
            max_output_tokens=self.max_tokens,
        )
        try:
            response = await model.generate_content_async(
                contents,
                generation_config=generation_config,
                stream=True,
            )
            async for chunk in response:
                if self._stopped:
                    break
                if chunk.text:
                    yield chunk.text
        except Exception as exc:
            if is_context_loss(exc):
                raise BackendLost(str(exc)) from exc
            raise

    async def interrupt(self) -> None:
        self._stopped = True


def create_backend_factory(config: RAGConfig) -> BackendFactory:
    """
    Build the backend factory for the configured provider.

    Args:
        config: DocChat configuration

    Returns:
        Awaitable factory ``(model_id, on_progress) -> InferenceBackend``
    """
    if config.llm_provider == "gemini":
        async def create_gemini(model_id: str, on_progress: Optional[InitProgressCallback] = None):
            return await GeminiBackend.create(
                model_id,
                on_progress=on_progress,
                api_key=config.gemini_api_key,
                max_tokens=config.max_tokens,
            )
        return create_gemini

    async def create_llama(model_id: str, on_progress: Optional[InitProgressCallback] = None):
        return await LlamaCppBackend.create(
            model_id,
            on_progress=on_progress,
            n_ctx=config.n_ctx,
            n_threads=config.n_threads,
            max_tokens=config.max_tokens,
        )
    return create_llama
