# =============================================================================
# Inner Voice - Reaction Engine
# =============================================================================
# Classifies each Observation against the configured keyword set and, per
# the speak_on policy, hands the description to the speech player.
# =============================================================================

import enum
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from observer.session import Observation
from shared.errors import UpstreamError

logger = logging.getLogger(__name__)


class SpeakOn(str, enum.Enum):
    ALWAYS = "always"
    ON_KEYWORD_MATCH = "onKeywordMatch"
    NEVER = "never"


@dataclass(frozen=True)
class KeywordSet:
    """
    Immutable, case-insensitive set of match terms.

    A description matches when any keyword is a substring of the lower-cased
    description. No stemming or tokenization; an empty set never matches.
    """

    terms: FrozenSet[str]

    @classmethod
    def of(cls, keywords: Iterable[str]) -> "KeywordSet":
        return cls(frozenset(k.lower() for k in keywords if k))

    def matches(self, text: str) -> bool:
        lowered = (text or "").lower()
        return any(term in lowered for term in self.terms)

    def __len__(self) -> int:
        return len(self.terms)


@dataclass(frozen=True)
class Reaction:
    matched: bool
    spoken: bool = False
    speech_error: Optional[str] = None


class ReactionEngine:
    """
    Reacts to applied observations.

    Args:
        keywords: KeywordSet used for the match flag.
        speak_on: When to synthesize speech.
        speech:   Optional SpeechPlayer; without one nothing is spoken.
    """

    def __init__(self, keywords: KeywordSet, speak_on: SpeakOn = SpeakOn.NEVER, speech=None):
        self.keywords = keywords
        self.speak_on = SpeakOn(speak_on)
        self.speech = speech

    def matches(self, observation: Observation) -> bool:
        return self.keywords.matches(observation.description)

    def should_speak(self, matched: bool) -> bool:
        if self.speech is None:
            return False
        if self.speak_on is SpeakOn.ALWAYS:
            return True
        if self.speak_on is SpeakOn.ON_KEYWORD_MATCH:
            return matched
        return False

    def react(
        self,
        observation: Observation,
        matched: Optional[bool] = None,
        generation: Optional[int] = None,
    ) -> Reaction:
        """
        Classify an observation and speak it if the policy says so.

        ``generation`` orders speech across concurrent reactions so an older
        observation never replaces the audio of a newer one.

        Speech failures are logged and reported in the returned Reaction;
        they are never raised.
        """
        if matched is None:
            matched = self.matches(observation)
        if matched:
            logger.info("Keyword match in frame %s", observation.frame_id)

        if not self.should_speak(matched):
            return Reaction(matched=matched)

        try:
            spoken = self.speech.speak(observation.description, generation=generation)
        except UpstreamError as exc:
            logger.warning("Error generating speech for frame %s: %s", observation.frame_id, exc)
            return Reaction(matched=matched, speech_error=str(exc))
        return Reaction(matched=matched, spoken=spoken)

    def close(self) -> None:
        if self.speech is not None:
            self.speech.close()
