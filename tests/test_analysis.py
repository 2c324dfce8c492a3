from rehearsal_coach.analysis import (
    BRIEF_SUGGESTION,
    CONSISTENT_SUGGESTION,
    LOW_SIMILARITY_SUGGESTION,
    PARTIAL_SIMILARITY_SUGGESTION,
    LONG_SENTENCES_SUGGESTION,
    MISSING_PART_SUGGESTIONS,
    SHORT_SENTENCES_SUGGESTION,
    TIMING_OPTIMAL_MESSAGE,
    TIMING_TOO_LONG_MESSAGE,
    TIMING_TOO_SHORT_MESSAGE,
    analyze,
    detect_parts,
)
from rehearsal_coach.models import FeedbackReport, NarrativePart

EXAMPLE = "At first everything was normal. However we hit a major problem. Eventually we resolved it and learned a lot."


def test_empty_transcript_yields_zeroed_report() -> None:
    report = analyze("", 30)

    assert report.content.word_count == 0
    assert report.content.sentence_count == 0
    assert report.content.avg_words_per_sentence == 0
    assert report.content.suggestions == (BRIEF_SUGGESTION,)
    assert not (report.narrative.has_setup or report.narrative.has_complication or report.narrative.has_resolution)
    assert report.narrative.score == 0
    assert report.narrative.percentage == 0
    assert len(report.narrative.suggestions) == 3
    assert report.timing.message == TIMING_TOO_SHORT_MESSAGE
    assert report.self_rating is None


def test_none_transcript_is_treated_as_empty() -> None:
    assert analyze(None, 90) == analyze("", 90)


def test_example_story_covers_all_three_parts() -> None:
    report = analyze(EXAMPLE, 95)

    assert report.narrative.has_setup is True
    assert report.narrative.has_complication is True
    assert report.narrative.has_resolution is True
    assert report.narrative.score == 3
    assert report.narrative.percentage == 100
    assert report.narrative.suggestions == ()
    assert report.timing.optimal is True
    assert report.timing.duration_seconds == 95


def test_percentage_for_each_score() -> None:
    cases = {
        "nothing to see here": (0, 0),
        "this and that": (1, 33),
        "this and that but not the other": (2, 67),
        "this and that but not the other so we left": (3, 100),
    }
    for text, (score, percentage) in cases.items():
        narrative = analyze(text, 90).narrative
        assert (narrative.score, narrative.percentage) == (score, percentage), text


def test_missing_part_suggestions_name_each_missing_part() -> None:
    narrative = analyze("However, it went badly.", 90).narrative

    assert narrative.has_complication is True
    assert narrative.suggestions == (
        MISSING_PART_SUGGESTIONS[NarrativePart.SETUP],
        MISSING_PART_SUGGESTIONS[NarrativePart.RESOLUTION],
    )


def test_markers_match_on_word_boundaries_only() -> None:
    found = detect_parts("Android sandboxes hold butterflies, sorted by issuer")

    assert found == {
        NarrativePart.SETUP: False,
        NarrativePart.COMPLICATION: False,
        NarrativePart.RESOLUTION: False,
    }


def test_markers_are_case_insensitive_and_span_whitespace() -> None:
    found = detect_parts("AT   FIRST it was calm. HOWEVER, AS A RESULT of the storm")

    assert all(found.values())


def test_timing_windows() -> None:
    assert analyze("", 45).timing.message == TIMING_TOO_SHORT_MESSAGE
    assert analyze("", 90).timing.message == TIMING_OPTIMAL_MESSAGE
    assert analyze("", 150).timing.message == TIMING_TOO_LONG_MESSAGE
    assert analyze("", 60).timing.optimal is True
    assert analyze("", 120).timing.optimal is True
    assert analyze("", 59).timing.optimal is False
    assert analyze("", 121).timing.optimal is False


def test_negative_duration_is_clamped() -> None:
    timing = analyze("", -10).timing

    assert timing.duration_seconds == 0
    assert timing.message == TIMING_TOO_SHORT_MESSAGE


def test_sentence_splitting_and_half_up_average() -> None:
    content = analyze("Wait... what?! Yes", 90).content
    assert content.sentence_count == 3
    assert content.word_count == 3

    assert analyze("a b c. d e.", 90).content.avg_words_per_sentence == 3


def test_long_sentence_suggestion() -> None:
    text = " ".join(["word"] * 30) + "."
    content = analyze(text, 90).content

    assert content.avg_words_per_sentence == 30
    assert content.suggestions == (BRIEF_SUGGESTION, LONG_SENTENCES_SUGGESTION)


def test_short_sentence_suggestion_needs_more_than_three_sentences() -> None:
    four = analyze("I ran. I hid. I won. I left.", 90).content
    three = analyze("I ran. I hid. I won.", 90).content

    assert SHORT_SENTENCES_SUGGESTION in four.suggestions
    assert SHORT_SENTENCES_SUGGESTION not in three.suggestions


def test_long_story_has_no_brevity_suggestion() -> None:
    sentence = "We planned the launch carefully and the whole team worked through the weekend together."
    content = analyze(" ".join([sentence] * 8), 90).content

    assert content.word_count == 112
    assert content.suggestions == ()


def test_analysis_is_deterministic() -> None:
    assert analyze(EXAMPLE, 95) == analyze(EXAMPLE, 95)


PREPARED = "We shipped the billing service before the holiday deadline."


def test_report_has_no_comparison_without_prepared_text() -> None:
    assert analyze(EXAMPLE, 95).comparison is None
    assert analyze(EXAMPLE, 95, prepared="   ").comparison is None


def test_comparison_lists_missing_and_additional_key_words() -> None:
    comparison = analyze("We shipped billing early despite the deadline pressure.", 90, prepared=PREPARED).comparison

    assert comparison.similarity == 50
    assert comparison.missing_key_elements == ("Service", "Before", "Holiday")
    assert comparison.additional_elements == ("Early", "Despite", "Pressure")
    assert comparison.suggestions == (
        PARTIAL_SIMILARITY_SUGGESTION,
        "Consider including these key elements that were missing: Service, Before, Holiday.",
    )


def test_faithful_rehearsal_is_consistent() -> None:
    comparison = analyze("we SHIPPED the billing service, before the holiday deadline", 90, prepared=PREPARED).comparison

    assert comparison.similarity == 100
    assert comparison.missing_key_elements == ()
    assert comparison.suggestions == (CONSISTENT_SUGGESTION,)


def test_unrelated_rehearsal_lists_at_most_five_missing_words() -> None:
    comparison = analyze("nothing alike", 90, prepared=PREPARED).comparison

    assert comparison.similarity == 0
    assert comparison.missing_key_elements == ("Shipped", "Billing", "Service", "Before", "Holiday")
    assert comparison.additional_elements == ("Nothing", "Alike")
    assert comparison.suggestions[0] == LOW_SIMILARITY_SUGGESTION


def test_comparison_survives_serialization() -> None:
    report = analyze("We shipped billing early.", 90, prepared=PREPARED).with_rating(2)

    assert FeedbackReport.from_dict(report.to_dict()) == report
    assert report.to_dict()["comparison"]["missing_key_elements"] == ["Service", "Before", "Holiday", "Deadline"]
