"""spaCy named-entity tagger adapter.

Maps spaCy entity labels onto the three supported entity types and adds a
pattern-based organization check for proper nouns spaCy did not label.

Label mapping:
    PERSON -> PERSON
    ORG -> ORGANIZATION
    GPE, LOC, FAC -> LOCATION
"""

import re
from functools import lru_cache
from typing import Callable, List

import spacy
import structlog

from sentiment_network.models.thread_models import EntityType, TaggedSpan

logger = structlog.get_logger(__name__)


DEFAULT_MODEL = "en_core_web_sm"
MIN_ENTITY_LENGTH = 3
LABELED_CONFIDENCE = 0.8
PATTERN_CONFIDENCE = 0.6

LABEL_MAP = {
    "PERSON": EntityType.PERSON,
    "ORG": EntityType.ORGANIZATION,
    "GPE": EntityType.LOCATION,
    "LOC": EntityType.LOCATION,
    "FAC": EntityType.LOCATION,
}

ORGANIZATION_PATTERNS = [
    re.compile(r'\b(Inc|LLC|Corp|Ltd|Company|Group|Systems|Technologies|Solutions|Services)\b', re.IGNORECASE),
    re.compile(r'\b(Microsoft|Google|Apple|Amazon|Meta|Tesla|OpenAI|Anthropic|DeepMind)\b', re.IGNORECASE),
    re.compile(r'\b(University|College|Institute|School|Department)\b', re.IGNORECASE),
    re.compile(r'\b(Agency|Commission|Bureau|Ministry)\b', re.IGNORECASE),
]


def is_likely_organization(text: str) -> bool:
    return any(pattern.search(text) for pattern in ORGANIZATION_PATTERNS)


@lru_cache(maxsize=2)
def load_pipeline(model: str = DEFAULT_MODEL):
    """Load a spaCy pipeline once per model name.

    The loaded pipeline is only read during tagging; per-run state lives on
    the SpacyTagger instance.
    """
    logger.info("spacy_model_loading", model=model)
    return spacy.load(model)


class SpacyTagger:
    """NER tagger returning TaggedSpan objects for one analysis run.

    Args:
        model: spaCy pipeline name (default: en_core_web_sm)
        organization_classifier: Predicate applied to unlabeled proper-noun
            runs; matches are tagged ORGANIZATION at lower confidence
        nlp: Preloaded spaCy Language object (skips load_pipeline)
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        organization_classifier: Callable[[str], bool] = is_likely_organization,
        nlp=None
    ):
        self.nlp = nlp if nlp is not None else load_pipeline(model)
        self.organization_classifier = organization_classifier

    def tag(self, text: str) -> List[TaggedSpan]:
        doc = self.nlp(text)
        spans = []
        covered = set()

        for ent in doc.ents:
            entity_type = LABEL_MAP.get(ent.label_)
            if entity_type is None or len(ent.text) < MIN_ENTITY_LENGTH:
                continue
            spans.append(TaggedSpan(
                text=ent.text,
                type=entity_type.value,
                start_index=ent.start_char,
                end_index=ent.end_char,
                confidence=LABELED_CONFIDENCE,
            ))
            covered.update(range(ent.start, ent.end))

        for start, end in self._proper_noun_runs(doc):
            if covered.intersection(range(start, end)):
                continue
            span = doc[start:end]
            if len(span.text) < MIN_ENTITY_LENGTH or not self.organization_classifier(span.text):
                continue
            spans.append(TaggedSpan(
                text=span.text,
                type=EntityType.ORGANIZATION.value,
                start_index=span.start_char,
                end_index=span.end_char,
                confidence=PATTERN_CONFIDENCE,
            ))

        return spans

    @staticmethod
    def _proper_noun_runs(doc):
        """Yield (start, end) token ranges of consecutive PROPN tokens."""
        start = None
        for token in doc:
            if token.pos_ == "PROPN":
                if start is None:
                    start = token.i
            elif start is not None:
                yield start, token.i
                start = None
        if start is not None:
            yield start, len(doc)
