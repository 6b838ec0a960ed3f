# arch_provider/model_props.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class LargeLanguageModel:
    key: str
    model_name: str
    human_readable_name: str
    generic: bool = False


#! MODEL CATALOG
# Keys are what configuration refers to; model_name may carry suffix tokens
# understood by parse_model_name.

LARGE_LANGUAGE_MODELS: Dict[str, LargeLanguageModel] = {
    m.key: m
    for m in (
        LargeLanguageModel("GPT_4O_MINI", "gpt-4o-mini", "GPT-4o mini"),
        LargeLanguageModel("GPT_4O", "gpt-4o", "GPT-4o"),
        LargeLanguageModel("GPT_4_1", "gpt-4.1", "GPT-4.1"),
        LargeLanguageModel("GPT_5_1", "gpt-5.1_standard", "GPT-5.1"),
        LargeLanguageModel("GPT_5_1_FAST", "gpt-5.1_fast", "GPT-5.1 (fast)"),
        LargeLanguageModel("GEMINI_2_5_FLASH", "gemini-2.5-flash", "Gemini 2.5 Flash"),
        LargeLanguageModel("GEMINI_2_5_FLASH_LITE", "gemini-2.5-flash-lite", "Gemini 2.5 Flash Lite"),
        LargeLanguageModel("GEMINI_2_5_PRO", "gemini-2.5-pro", "Gemini 2.5 Pro"),
        # placeholder for ad-hoc model names passed through configuration
        LargeLanguageModel("GENERIC", "", "Generic", generic=True),
    )
}


def resolve_model_name(model: str) -> str:
    """
    Accepts either a catalog key ('GPT_4O') or a raw model name
    ('gpt-4o', 'gpt-5.1_deep') and returns the raw model name.
    """
    entry = LARGE_LANGUAGE_MODELS.get((model or "").strip())
    if entry is None:
        return (model or "").strip()
    if entry.generic:
        raise ValueError(f"resolve_model_name: '{entry.key}' is a generic placeholder, pass a concrete model name")
    return entry.model_name


def human_readable_name(model: str) -> str:
    entry = LARGE_LANGUAGE_MODELS.get((model or "").strip())
    if entry is not None:
        return entry.human_readable_name
    for e in LARGE_LANGUAGE_MODELS.values():
        if e.model_name and e.model_name == model:
            return e.human_readable_name
    return model


# !######################################################################################################
#! UTILS
# !######################################################################################################

def is_openai_model(model_name) -> bool:
    prefixes = ("gpt-", "gpt4", "o1", "o3", "o4")
    return any(model_name.startswith(p) for p in prefixes)


# (verbosity, reasoning_effort, service_tier)
_WILDCARDS: Dict[str, Tuple[Optional[str], Optional[str], Optional[str]]] = {
    "standard": ("low", "low", None),
    "std": ("low", "low", None),
    "fast": ("low", "none", None),
    "deep": ("medium", "high", None),
    "standard-flex": ("low", "low", "flex"),
    "fast-flex": ("low", "none", "flex"),
}

_VERBOSITY_TOKENS = {"low", "medium", "high"}
_REASONING_TOKENS = {"none", "minimal", "low", "medium", "high", "xhigh"}
_SERVICE_TIER_TOKENS = {"auto", "default", "flex", "priority"}


def parse_model_name(raw: str) -> Tuple[str, Dict[str, Any]]:
    """Parse strings like:
        - 'gpt-4o'            -> ('gpt-4o', {})
        - 'gpt-5.1_standard'  -> ('gpt-5.1', {text.verbosity, reasoning.effort, service_tier})
        - 'gpt-5.1_low_high'  -> explicit verbosity then reasoning effort
    into (base_model, openai_params).
    """
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("parse_model_name: No Model Name passed.")

    parts = raw.split("_")
    base = parts[0]
    if len(parts) <= 1:
        return base, {}

    verbosity: Optional[str] = None
    reasoning_effort: Optional[str] = None
    service_tier: Optional[str] = None

    unknown = []
    for tok in parts[1:]:
        t = tok.strip().lower()
        if not t:
            continue

        if t in _WILDCARDS:
            w_verb, w_reason, w_tier = _WILDCARDS[t]
            verbosity = verbosity or w_verb
            reasoning_effort = reasoning_effort or w_reason
            service_tier = service_tier or w_tier
        elif verbosity is None and t in _VERBOSITY_TOKENS:
            verbosity = t
        elif reasoning_effort is None and t in _REASONING_TOKENS:
            reasoning_effort = t
        elif service_tier is None and t in _SERVICE_TIER_TOKENS:
            service_tier = t
        else:
            unknown.append(t)

    if unknown:
        raise ValueError(f"parse_model_name: Unknown model suffix token(s) {unknown} in '{raw}'.")

    params: Dict[str, Any] = {}
    if verbosity is not None:
        params.setdefault("text", {})["verbosity"] = verbosity
    if reasoning_effort is not None:
        params.setdefault("reasoning", {})["effort"] = reasoning_effort
    params["service_tier"] = service_tier or "default"
    return base, params
