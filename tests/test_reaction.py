from unittest.mock import MagicMock

import pytest

from observer.reaction import KeywordSet, ReactionEngine, SpeakOn
from shared.errors import UpstreamError

from fakes import make_observation


class TestKeywordSet:
    def test_matches_substring_case_insensitively(self):
        keywords = KeywordSet.of(["fridge", "freezer"])
        assert keywords.matches("You're staring into the fridge again")
        assert keywords.matches("Oh look, the FREEZER. Bold choice.")

    def test_no_match(self):
        keywords = KeywordSet.of(["fridge", "freezer"])
        assert not keywords.matches("You're holding a mug")

    def test_keywords_are_lower_cased(self):
        keywords = KeywordSet.of(["WaterBottle"])
        assert keywords.matches("that waterbottle is empty again")

    def test_substring_inside_word_matches(self):
        # No tokenization: "cooler" inside "watercooler" counts.
        assert KeywordSet.of(["cooler"]).matches("gossip at the watercooler")

    def test_empty_set_never_matches(self):
        keywords = KeywordSet.of([])
        assert len(keywords) == 0
        assert not keywords.matches("fridge")
        assert not keywords.matches("")

    def test_blank_keywords_are_dropped(self):
        keywords = KeywordSet.of(["", "fridge"])
        assert keywords.terms == frozenset({"fridge"})
        assert not keywords.matches("a mug")

    def test_idempotent(self):
        keywords = KeywordSet.of(["fridge"])
        text = "Back at the fridge?"
        assert keywords.matches(text) == keywords.matches(text)


class TestReactionEngine:
    def _engine(self, speak_on, speech=None):
        return ReactionEngine(KeywordSet.of(["fridge"]), speak_on=speak_on, speech=speech)

    def test_never_does_not_speak(self):
        speech = MagicMock()
        reaction = self._engine(SpeakOn.NEVER, speech).react(make_observation("the fridge"))
        assert reaction.matched is True
        assert reaction.spoken is False
        speech.speak.assert_not_called()

    def test_always_speaks_unmatched(self):
        speech = MagicMock()
        speech.speak.return_value = True
        reaction = self._engine(SpeakOn.ALWAYS, speech).react(make_observation("a mug"))
        assert reaction.matched is False
        assert reaction.spoken is True
        speech.speak.assert_called_once_with("a mug", generation=None)

    @pytest.mark.parametrize("text,expected", [("the fridge again", True), ("a mug", False)])
    def test_on_keyword_match(self, text, expected):
        speech = MagicMock()
        speech.speak.return_value = True
        reaction = self._engine("onKeywordMatch", speech).react(make_observation(text))
        assert reaction.spoken is expected
        assert speech.speak.called is expected

    def test_without_speech_player_nothing_is_spoken(self):
        reaction = self._engine(SpeakOn.ALWAYS).react(make_observation("the fridge"))
        assert reaction.spoken is False

    def test_speech_failure_is_reported_not_raised(self):
        speech = MagicMock()
        speech.speak.side_effect = UpstreamError("503 from speech endpoint")
        reaction = self._engine(SpeakOn.ALWAYS, speech).react(make_observation("a mug"))
        assert reaction.spoken is False
        assert "503" in reaction.speech_error

    def test_explicit_matched_flag_is_used(self):
        reaction = self._engine(SpeakOn.NEVER).react(make_observation("a mug"), matched=True)
        assert reaction.matched is True

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            ReactionEngine(KeywordSet.of([]), speak_on="sometimes")

    def test_close_closes_speech(self):
        speech = MagicMock()
        self._engine(SpeakOn.ALWAYS, speech).close()
        speech.close.assert_called_once()
