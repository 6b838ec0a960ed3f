# arch_provider/architecture_prompts.py

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from arch_provider.settings import ConfigurationError

logger = logging.getLogger("arch_provider")

SLOT = "{content}"

SEED = "seed"
PREVIOUS_REPLY = "previous_reply"
_FILL_MODES = (SEED, PREVIOUS_REPLY, None)


@dataclass(frozen=True)
class PromptStage:
    text: str
    fills_with: Optional[str] = SEED


PromptFamily = Tuple[PromptStage, ...]


DOCUMENTATION_ONLY_V1_PROMPT = """
Your task is to identify the high-level components based on a software architecture documentation. In a first step, you shall elaborate on the following documentation:

{content}
"""

DOCUMENTATION_LIST_PROMPT = """
Now provide a list that only covers the component names in camel case. Omit common prefixes and suffixes.
Output format:
- Name1
- Name2
"""

CODE_ONLY_V1_PROMPT = """
You get the Packages of a software project. Your task is to summarize the Packages w.r.t. the high-level architecture of the system. Try to identify possible components.

Packages:

{content}
"""

CODE_LIST_PROMPT = """
Now provide a list that only covers the component names. Omit common prefixes and suffixes in the names in camel case.
Output format:
- Name1
- Name2
"""

AGGREGATION_V1_PROMPT = """
You get a list of possible component names. Your task is to aggregate the list and remove duplicates.
Also filter out component names that are very generic. Provide only the final component names in camel case.
Output format:
- Name1
- Name2

Possible component names:

{content}
"""

DOCUMENTATION_SUMMARY_PROMPT = """
Summarize the following software architecture documentation. Focus on the building blocks of the system, what each one is responsible for and how they interact.

{content}
"""

SUMMARY_ENUMERATION_PROMPT = """
Based on this summary, list the high-level components of the system in camel case. Omit common prefixes and suffixes.
Output format:
- Name1
- Name2

Summary:

{content}
"""


def validate_family(name: str, stages: Iterable[PromptStage]) -> PromptFamily:
    family = tuple(stages)
    if not family:
        raise ConfigurationError(f"Prompt family '{name}' has no stages")
    if family[0].fills_with != SEED:
        raise ConfigurationError(f"Prompt family '{name}': the first stage must be filled with the seed text")
    for idx, stage in enumerate(family):
        if stage.fills_with not in _FILL_MODES:
            raise ConfigurationError(f"Prompt family '{name}' stage {idx}: unknown fill mode '{stage.fills_with}'")
        slots = stage.text.count(SLOT)
        if stage.fills_with is None and slots:
            raise ConfigurationError(f"Prompt family '{name}' stage {idx}: verbatim stage must not contain {SLOT}")
        if stage.fills_with is not None and slots != 1:
            raise ConfigurationError(
                f"Prompt family '{name}' stage {idx}: expected exactly one {SLOT} slot, found {slots}"
            )
    return family


BUILTIN_PROMPT_FAMILIES: Mapping[str, PromptFamily] = MappingProxyType({
    "documentation_only_v1": validate_family("documentation_only_v1", (
        PromptStage(DOCUMENTATION_ONLY_V1_PROMPT, SEED),
        PromptStage(DOCUMENTATION_LIST_PROMPT, None),
    )),
    "code_only_v1": validate_family("code_only_v1", (
        PromptStage(CODE_ONLY_V1_PROMPT, SEED),
        PromptStage(CODE_LIST_PROMPT, None),
    )),
    "aggregation_v1": validate_family("aggregation_v1", (
        PromptStage(AGGREGATION_V1_PROMPT, SEED),
    )),
    "documentation_summary_v1": validate_family("documentation_summary_v1", (
        PromptStage(DOCUMENTATION_SUMMARY_PROMPT, SEED),
        PromptStage(SUMMARY_ENUMERATION_PROMPT, PREVIOUS_REPLY),
    )),
})


def families_from_config(raw: Mapping[str, Any]) -> Dict[str, PromptFamily]:
    """
    Turn the 'prompt_families' block of a provider config into families:

        {"my_family": [{"text": "... {content} ...", "fills_with": "seed"},
                       {"text": "...", "fills_with": null}]}

    A bare string stage is shorthand for a seed-filled stage.
    """
    out: Dict[str, PromptFamily] = {}
    for name, stages in (raw or {}).items():
        if isinstance(stages, (str, dict)):
            stages = [stages]
        parsed = []
        for stage in stages or []:
            if isinstance(stage, str):
                parsed.append(PromptStage(stage, SEED))
            elif isinstance(stage, dict) and "text" in stage:
                parsed.append(PromptStage(str(stage["text"]), stage.get("fills_with", SEED)))
            else:
                raise ConfigurationError(f"Prompt family '{name}': cannot read stage {stage!r}")
        out[name] = validate_family(name, parsed)
    return out


FamilyRef = Union[str, Iterable[PromptStage], None]


class PromptTemplateSet:
    """
    The prompt families selected for one provider run.

    At least one of documentation/code must be set. With both set and no
    aggregation family the set falls back to similarity aggregation, unless
    strict_aggregation is on, in which case construction fails.
    """

    def __init__(
        self,
        documentation: FamilyRef = None,
        code: FamilyRef = None,
        aggregation: FamilyRef = None,
        *,
        strict_aggregation: bool = False,
        extra_families: Optional[Mapping[str, PromptFamily]] = None,
    ):
        registry = dict(BUILTIN_PROMPT_FAMILIES)
        registry.update(extra_families or {})
        self._registry: Mapping[str, PromptFamily] = MappingProxyType(registry)

        self.documentation = self._resolve("documentation", documentation)
        self.code = self._resolve("code", code)
        self.aggregation = self._resolve("aggregation", aggregation)

        if self.documentation is None and self.code is None:
            raise ConfigurationError("At least one prompt family (documentation or code) must be provided")

        if self.documentation is not None and self.code is not None and self.aggregation is None:
            if strict_aggregation:
                raise ConfigurationError(
                    "Both documentation and code prompts are set but no aggregation prompt was provided"
                )
            logger.info("No aggregation prompt configured, using similarity metrics to aggregate the component names")
        elif self.aggregation is not None and (self.documentation is None or self.code is None):
            logger.info("Only one evidence source configured, the aggregation prompt will not be used")

    def _resolve(self, role: str, ref: FamilyRef) -> Optional[PromptFamily]:
        if ref is None:
            return None
        if isinstance(ref, str):
            family = self._registry.get(ref)
            if family is None:
                raise ConfigurationError(
                    f"Unknown {role} prompt family '{ref}'. Known families: {sorted(self._registry)}"
                )
            return family
        return validate_family(role, ref)

    @property
    def families(self) -> Mapping[str, PromptFamily]:
        return self._registry

    @property
    def aggregation_strategy(self) -> str:
        if self.documentation is None or self.code is None:
            return "passthrough"
        return "model" if self.aggregation is not None else "similarity"

    @classmethod
    def from_settings(cls, settings) -> "PromptTemplateSet":
        return cls(
            documentation=settings.documentation_prompt,
            code=settings.code_prompt,
            aggregation=settings.aggregation_prompt,
            strict_aggregation=settings.strict_aggregation,
            extra_families=families_from_config(settings.prompt_families),
        )
