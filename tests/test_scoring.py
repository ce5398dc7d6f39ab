import json

import pytest

from app.services.scoring import (
    GENERIC_CODE_EVALUATION,
    TRANSCRIPTION_FAILED_SENTINEL,
    build_evaluation_prompt,
    extract_code_evaluation,
    extract_json_object,
    heuristic_evaluation,
    is_failure_sentinel,
    parse_evaluation_text,
)

LONG_REACT_ANSWER = (
    "React hooks let function components use state and lifecycle features. The useState hook "
    "stores component state between renders, and useEffect runs side effects after render. "
    "For example a data fetching component can load props dependent data inside an effect, "
    "which keeps the design simple and improves performance compared to class lifecycle methods."
)


def _all_criteria(evaluation):
    c = evaluation.criteria
    return {c.technical_accuracy, c.completeness, c.clarity, c.examples}


@pytest.mark.parametrize(
    "transcript",
    [
        "Hello, my name is Sam",
        "hi there, nice to meet you and thanks for having me today",
        "testing testing one two three",
        "I think hooks are good",
        "",
    ],
)
def test_heuristic_scores_irrelevant_answers_as_one(transcript):
    evaluation = heuristic_evaluation("Explain React hooks", transcript, tech_stack="React")

    assert evaluation.score == 1
    assert _all_criteria(evaluation) == {1}
    assert evaluation.evaluation_method == "fallback"


def test_heuristic_does_not_flag_answers_about_testing():
    transcript = (
        "Testing React components means rendering them with a test renderer, asserting on the output, "
        "mocking network calls and checking that state updates re-render the component correctly."
    )
    evaluation = heuristic_evaluation("How do you test React components?", transcript, tech_stack="React")

    assert evaluation.score > 1


def test_heuristic_blends_relevance_density_and_length():
    evaluation = heuristic_evaluation("Explain React hooks", LONG_REACT_ANSWER, tech_stack="React")

    assert 1 < evaluation.score <= 10
    assert evaluation.criteria.examples == 7
    assert evaluation.criteria.clarity == pytest.approx(min(len(LONG_REACT_ANSWER.split()) / 10, 10))
    assert "fallback" in evaluation.feedback


def test_heuristic_is_deterministic():
    first = heuristic_evaluation("Explain React hooks", LONG_REACT_ANSWER, tech_stack="React", code="const [a] = useState(0)")
    second = heuristic_evaluation("Explain React hooks", LONG_REACT_ANSWER, tech_stack="React", code="const [a] = useState(0)")

    assert first == second


def test_parse_valid_json_keeps_fields():
    payload = {
        "score": 8,
        "feedback": "Clear and correct.",
        "criteria": {"technicalAccuracy": 9, "completeness": 8, "clarity": 7, "examples": 6},
    }
    evaluation = parse_evaluation_text(json.dumps(payload))

    assert evaluation.score == 8
    assert evaluation.feedback == "Clear and correct."
    assert evaluation.criteria.model_dump(by_alias=True) == payload["criteria"]


def test_parse_is_idempotent_on_its_own_output():
    first = parse_evaluation_text('{"score": 6.5, "feedback": "ok", "criteria": {"technicalAccuracy": 6, '
                                  '"completeness": 7, "clarity": 6, "examples": 7}}')
    again = parse_evaluation_text(first.model_dump_json(by_alias=True))

    assert again.score == first.score
    assert again.feedback == first.feedback
    assert again.criteria == first.criteria


def test_parse_extracts_json_from_surrounding_text():
    text = 'Here is my evaluation:\n{"score": 4, "feedback": "Missing key ideas", "criteria": {}}\nThanks!'
    evaluation = parse_evaluation_text(text)

    assert evaluation.score == 4
    assert evaluation.feedback == "Missing key ideas"


@pytest.mark.parametrize("text", ["not json at all", "{broken: json", ""])
def test_parse_malformed_text_is_neutral(text):
    evaluation = parse_evaluation_text(text)

    assert evaluation.score == 5
    assert _all_criteria(evaluation) == {5}
    assert evaluation.feedback == text


def test_parse_without_score_uses_weighted_blend():
    evaluation = parse_evaluation_text(
        '{"feedback": "fine", "criteria": {"technicalAccuracy": 10, "completeness": 5, "clarity": 5, "examples": 0}}'
    )

    assert evaluation.score == pytest.approx(6.5)


def test_extract_json_object_skips_non_objects():
    assert extract_json_object("[1, 2] then {\"a\": 1}") == {"a": 1}
    assert extract_json_object("nothing here") is None


def test_code_assessment_excerpt():
    feedback = "Good answer.\n\nCode Assessment: The loop is correct but misses edge cases.\n\nOverall fine."

    assert extract_code_evaluation(feedback, "for x in y: pass").startswith("Code Assessment:")
    assert extract_code_evaluation("No section here", "print(1)") == GENERIC_CODE_EVALUATION
    assert extract_code_evaluation(feedback, None) == ""


def test_prompt_mentions_code_assessment_only_with_code():
    prompt = build_evaluation_prompt("Explain hooks", "answer", tech_stack="React", code="useState()")

    assert "Code submission" in prompt
    assert "useState()" in prompt
    assert "Technical accuracy (40%)" in prompt
    assert "Code submission" not in build_evaluation_prompt("Explain hooks", "answer")


def test_failure_sentinel_detection():
    assert is_failure_sentinel(TRANSCRIPTION_FAILED_SENTINEL)
    assert not is_failure_sentinel("a normal answer")
    assert not is_failure_sentinel(None)
