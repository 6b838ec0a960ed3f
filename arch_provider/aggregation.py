# arch_provider/aggregation.py

import logging
from typing import List, Optional, Sequence

from arch_provider.architecture_prompts import PromptFamily, PromptTemplateSet
from arch_provider.cancellation import CancellationToken
from arch_provider.conversation import ConversationDriver
from arch_provider.response_parser import ResponseParser
from arch_provider.similarity import SimilarityMeasure

logger = logging.getLogger("arch_provider")


class PassthroughAggregator:
    strategy = "passthrough"

    def aggregate(self, doc_names: Sequence[str], code_names: Sequence[str], token: Optional[CancellationToken] = None) -> List[str]:
        return [*doc_names, *code_names]


class SimilarityAggregator:
    """
    Greedy, order-dependent dedup: walks doc ++ code and keeps a name only
    if it is not similar to any name kept before it. First seen wins.
    """

    strategy = "similarity"

    def __init__(self, measure: SimilarityMeasure):
        self.measure = measure

    def aggregate(self, doc_names: Sequence[str], code_names: Sequence[str], token: Optional[CancellationToken] = None) -> List[str]:
        accepted: List[str] = []
        for name in [*doc_names, *code_names]:
            match = next((kept for kept in accepted if self.measure.are_words_similar(kept, name)), None)
            if match is None:
                accepted.append(name)
            else:
                logger.info(f"Similar component name found (skipping): {name} ~ {match}")
        return accepted


class ModelAggregator:
    """
    Hands both candidate lists to the model once more and parses its answer.
    """

    strategy = "model"

    def __init__(self, driver: ConversationDriver, family: PromptFamily, parser: Optional[ResponseParser] = None):
        self.driver = driver
        self.family = family
        self.parser = parser or ResponseParser()

    def aggregate(self, doc_names: Sequence[str], code_names: Sequence[str], token: Optional[CancellationToken] = None) -> List[str]:
        joined = "\n".join([*doc_names, *code_names])
        reply = self.driver.run(self.family, joined, token)
        logger.info(f"Response (Aggregation):\n{reply}")
        return self.parser.parse(reply)


def build_aggregator(
    prompt_set: PromptTemplateSet,
    driver: ConversationDriver,
    measure: SimilarityMeasure,
    parser: Optional[ResponseParser] = None,
):
    strategy = prompt_set.aggregation_strategy
    if strategy == "model":
        return ModelAggregator(driver, prompt_set.aggregation, parser)
    if strategy == "similarity":
        return SimilarityAggregator(measure)
    return PassthroughAggregator()
