import asyncio
import logging
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar, Union

import openai
from openai import OpenAI
from langchain_google_vertexai import ChatVertexAI
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from arch_provider.model_props import human_readable_name, is_openai_model, parse_model_name

T = TypeVar("T")

logger = logging.getLogger("arch_provider")


class MaxRetryErrorsException(Exception):
    pass


# Global backoff state (shared across all clients)
_global_backoff_lock = threading.Lock()
_global_wait_until = 0.0
_global_backoff_seconds = 30.0
_GLOBAL_BACKOFF_MAX = 600.0

# Errors that a retry cannot fix: bad credentials, missing model, malformed request.
_FATAL_OPENAI_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
)


def _is_timeout_error(e: Exception) -> bool:
    if isinstance(e, (asyncio.TimeoutError, openai.APITimeoutError)):
        return True
    msg = repr(e)
    return "TimeoutError" in msg or "timed out" in msg.lower()


def _is_resource_exhausted_error(e: Exception) -> bool:
    if isinstance(e, openai.RateLimitError):
        return True
    msg = str(e)
    return (
        "429" in msg
        and (
            "RESOURCE_EXHAUSTED" in msg
            or "Resource has been exhausted" in msg
            or "Too Many Requests" in msg
        )
    )


def _is_fatal_error(e: Exception) -> bool:
    if isinstance(e, _FATAL_OPENAI_ERRORS):
        return True
    # google.api_core surfaces these by name; avoid importing it just for the check
    return type(e).__name__ in ("Unauthenticated", "PermissionDenied", "InvalidArgument", "DefaultCredentialsError")


def _respect_global_backoff() -> None:
    while True:
        with _global_backoff_lock:
            wait = _global_wait_until - time.monotonic()
        if wait <= 0:
            return
        time.sleep(min(wait, 1.0))


def _register_429_and_get_delay() -> float:
    global _global_wait_until, _global_backoff_seconds

    with _global_backoff_lock:
        now = time.monotonic()
        base = _global_backoff_seconds
        delay = random.uniform(base * 0.95, base * 1.35)
        _global_backoff_seconds = min(_global_backoff_seconds * 2, _GLOBAL_BACKOFF_MAX)
        _global_wait_until = max(_global_wait_until, now + delay)
        return delay


def _reset_backoff_on_success() -> None:
    global _global_backoff_seconds
    with _global_backoff_lock:
        _global_backoff_seconds = max(1.0, _global_backoff_seconds * 0.5)


def call_with_retries_sync(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    log: Callable[[str], None] | None = None,
) -> T:
    """
    Run a sync LLM call with global 429/timeout backoff + retries.
    Fatal errors (auth, permission, bad request) are raised on the first attempt.
    """
    last_exception: Exception | None = None

    for attempt in range(retries):
        _respect_global_backoff()
        start_time = time.time()
        try:
            result = fn()
            _reset_backoff_on_success()
            return result
        except Exception as e:
            if _is_fatal_error(e):
                raise
            elapsed = time.time() - start_time
            last_exception = e

            if _is_resource_exhausted_error(e) or _is_timeout_error(e):
                delay = _register_429_and_get_delay()
                msg = f"Attempt {attempt+1} got 429/timeout, backing off ~{delay:.1f}s."
            else:
                msg = f"Attempt {attempt+1} failed."

            if log:
                log(f"{msg} (elapsed={elapsed:.2f}s): {e!r}")

    raise MaxRetryErrorsException(f"All {retries} retry attempts failed.") from last_exception


ChatInput = Union[str, Sequence[BaseMessage]]


class ChatLlmClient:
    """
    Minimal wrapper for chat-style use:

        text = chat_llm.invoke([HumanMessage(...), AIMessage(...), ...])
        text = chat_llm.invoke("single turn prompt")

    Under the hood:
    - Vertex: ChatVertexAI.invoke(messages)
    - OpenAI: Responses API with input=[{role, content}, ...]
    """

    def __init__(
        self,
        model_name: str,
        *,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
        vertex_project: Optional[str] = None,
        vertex_region: Optional[str] = None,
        timeout: float | None = None,
        temperature: float | None = None,
        retries: int = 3,
    ):
        self.provider = "openai" if is_openai_model(model_name) else "vertex"
        self.model_name = model_name
        self.retries = retries
        self._temperature = temperature
        self.last_usage: Optional[Dict[str, int]] = None
        self._openai_params: Dict[str, Any] = {}

        if self.provider == "vertex":
            vertex_kwargs: Dict[str, Any] = {
                "project": vertex_project,
                "location": vertex_region,
                "model_name": model_name,
                "timeout": timeout,
                "max_retries": 0,
            }
            if temperature is not None:
                vertex_kwargs["temperature"] = temperature
            self._vertex = ChatVertexAI(**vertex_kwargs)
            self._client = None
        else:
            self._vertex = None
            self.model_name, self._openai_params = parse_model_name(self.model_name)
            client_kwargs: Dict[str, Any] = {"max_retries": 0, "api_key": api_key}
            if organization:
                client_kwargs["organization"] = organization
            if timeout is not None:
                client_kwargs["timeout"] = timeout
            self._client = OpenAI(**client_kwargs)

    # -----------------------
    # Usage accounting
    # -----------------------

    def _merge_counts(self, inc: Dict[str, int]) -> None:
        if self.last_usage is None:
            self.last_usage = dict(inc)
            return
        for k, v in inc.items():
            self.last_usage[k] = (self.last_usage.get(k, 0) or 0) + (v or 0)

    def _merge_openai_usage(self, resp: Any) -> None:
        usage = getattr(resp, "usage", None)
        if usage is None:
            return
        self._merge_counts({
            "prompt_token_count": getattr(usage, "input_tokens", 0) or 0,
            "candidates_token_count": getattr(usage, "output_tokens", 0) or 0,
            "total_token_count": getattr(usage, "total_tokens", 0) or 0,
        })

    def _merge_vertex_usage(self, resp: Any) -> None:
        usage_md = getattr(resp, "usage_metadata", None)
        if usage_md is None:
            rm = getattr(resp, "response_metadata", None)
            if isinstance(rm, dict):
                usage_md = rm.get("usage_metadata")
        if not usage_md:
            return

        def get(*keys: str) -> int:
            for k in keys:
                v = usage_md.get(k) if isinstance(usage_md, dict) else getattr(usage_md, k, None)
                if v:
                    return int(v)
            return 0

        self._merge_counts({
            "prompt_token_count": get("prompt_token_count", "input_tokens"),
            "candidates_token_count": get("candidates_token_count", "output_tokens"),
            "total_token_count": get("total_token_count", "total_tokens"),
        })

    # -----------------------
    # Calls
    # -----------------------

    def _to_messages(self, messages: ChatInput) -> List[BaseMessage]:
        if isinstance(messages, str):
            return [HumanMessage(content=messages)]
        return list(messages)

    def _to_openai_messages(self, messages: List[BaseMessage]) -> List[Dict[str, str]]:
        out: List[Dict[str, str]] = []
        for m in messages:
            if isinstance(m, SystemMessage):
                role = "developer"
            elif isinstance(m, AIMessage):
                role = "assistant"
            else:
                role = "user"
            out.append({"role": role, "content": str(m.content)})
        return out

    def _invoke_once(self, messages: List[BaseMessage]) -> str:
        """
        Single HTTP call without retries/backoff.
        """
        if self.provider == "vertex":
            resp = self._vertex.invoke(messages)
            self._merge_vertex_usage(resp)
            if isinstance(resp, str):
                return resp
            return str(getattr(resp, "content", resp))

        request: Dict[str, Any] = dict(self._openai_params)
        if self._temperature is not None:
            request["temperature"] = self._temperature
        resp = self._client.responses.create(
            model=self.model_name,
            input=self._to_openai_messages(messages),
            **request,
        )
        self._merge_openai_usage(resp)

        text = getattr(resp, "output_text", "") or ""
        return text.strip()

    def invoke(self, messages: ChatInput, *, retries: int | None = None) -> str:
        """
        Synchronous chat call with global 429/timeout backoff + retries.
        A plain string is sent as a one-message conversation.
        """
        history = self._to_messages(messages)
        return call_with_retries_sync(
            lambda: self._invoke_once(history),
            retries=retries or self.retries,
            log=lambda msg: logger.warning(f"[CHAT-LLM-RETRY] {msg}"),
        )


def build_chat_llm(settings) -> ChatLlmClient:
    """
    Create the chat client for already-validated ProviderSettings.
    """
    logger.info(f"Using LLM {human_readable_name(settings.model)} ({settings.model_name}, {settings.provider})")
    return ChatLlmClient(
        settings.model_name,
        api_key=settings.openai_api_key,
        organization=settings.openai_org_id,
        vertex_project=settings.vertex_project,
        vertex_region=settings.vertex_region,
        timeout=settings.timeout,
        temperature=settings.temperature,
        retries=settings.retries,
    )
