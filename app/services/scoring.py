"""
Answer scoring shared by the API and the candidate session pipeline.

- ``build_evaluation_prompt`` renders the fixed rubric sent to the LLM.
- ``parse_evaluation_text`` turns the model's free text into an ``Evaluation`` and never raises.
- ``heuristic_evaluation`` is the offline fallback used when the LLM call itself fails.

The thresholds and keyword tables below are tunable constants, kept as-is from the
scoring policy the product shipped with.
"""

import json
import math
import re
from typing import Any, Dict, List, Optional

from app.schemas.ai import Evaluation
from app.schemas.answer import Criteria

TRANSCRIPTION_FAILED_SENTINEL = (
    "[TRANSCRIPTION FAILED] Unable to transcribe audio. Please check audio quality or try again."
)
LIVE_TRANSCRIPT_PLACEHOLDER = "[TRANSCRIPT FROM WEB SPEECH API NOT AVAILABLE]"
NO_VERBAL_RESPONSE = "No verbal response provided."
GENERIC_CODE_EVALUATION = "Code was evaluated as part of the overall response."

MIN_RELEVANT_WORDS = 20
IRRELEVANT_SCORE = 1.0
NEUTRAL_SCORE = 5.0
MAX_SCORE = 10.0

RUBRIC_WEIGHTS = {
    "technical_accuracy": 0.4,
    "completeness": 0.3,
    "clarity": 0.2,
    "examples": 0.1,
}

HEURISTIC_RELEVANCE_WEIGHT = 0.5
HEURISTIC_DENSITY_WEIGHT = 0.3
HEURISTIC_LENGTH_WEIGHT = 0.2
KEYWORD_DENSITY_TARGET = 8
TRANSCRIPT_LENGTH_TARGET = 500
CODE_LENGTH_TARGET = 200
CODE_EXAMPLE_MIN_CHARS = 50

# checked in order; the first topic found in the question wins
TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "react": ["component", "jsx", "virtual dom", "state", "props", "hooks", "lifecycle", "render"],
    "node": ["event loop", "callback", "async", "express", "middleware", "server"],
    "python": ["list", "tuple", "dictionary", "class", "function", "django", "flask"],
    "java": ["class", "interface", "inheritance", "polymorphism", "spring"],
}
STACK_KEYWORDS: Dict[str, List[str]] = {
    "react": ["component", "jsx", "virtual dom", "state", "props", "hooks"],
    "node": ["event loop", "callback", "async", "express", "middleware"],
    "python": ["list", "tuple", "dictionary", "class", "function", "django", "flask"],
    "java": ["class", "interface", "inheritance", "polymorphism", "spring"],
}
GENERAL_KEYWORDS = [
    "algorithm", "performance", "optimization", "design", "pattern",
    "architecture", "framework", "library", "function", "method",
]

GREETING_PATTERN = re.compile(r"\s*(hi|hello|hey|greetings|my name is)\b.*", re.IGNORECASE)
TEST_MESSAGE_PATTERN = re.compile(
    r"\s*(this is (just )?a )?(test(ing)?|mic check)([\s,.!]+(test(ing)?|one|two|three|\d))*[\s.!]*",
    re.IGNORECASE,
)
CODE_ASSESSMENT_PATTERN = re.compile(
    r"(?:Code Assessment|Code evaluation|Code submission|Code analysis):([\s\S]*?)(?=\n\n|$)",
    re.IGNORECASE,
)


def _round1(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _clamp(value: Any, default: float = NEUTRAL_SCORE) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(MAX_SCORE, number))


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())


def is_failure_sentinel(transcript: Optional[str]) -> bool:
    return bool(transcript) and transcript.startswith("[TRANSCRIPTION FAILED]")


def weighted_score(criteria: Criteria) -> float:
    total = sum(getattr(criteria, name) * weight for name, weight in RUBRIC_WEIGHTS.items())
    return _round1(total)


def build_evaluation_prompt(
    question: str,
    transcript: Optional[str],
    tech_stack: Optional[str] = None,
    code: Optional[str] = None,
) -> str:
    answer_block = f"Answer transcript: {transcript}" if transcript else "No verbal answer was provided."
    code_block = f"\nCode submission:\n```\n{code}\n```\n" if code else ""

    return (
        f"As an expert interviewer in {tech_stack or 'technology'}, evaluate the following answer to this "
        "technical question. You must be extremely strict and fair in your evaluation.\n\n"
        f"Question: {question}\n\n"
        f"{answer_block}\n"
        f"{code_block}\n"
        "CRITICAL EVALUATION INSTRUCTIONS:\n"
        "1. RELEVANCE CHECK (MOST IMPORTANT): First, determine if the answer is relevant to the question.\n"
        "   - If the answer is completely irrelevant, just a greeting, or merely states the candidate's name "
        "without addressing the technical question, you MUST assign a score of 1/10 for ALL criteria "
        "(technicalAccuracy, completeness, clarity, examples) and an overall score of 1/10.\n"
        "   - Feedback should clearly state that the answer is irrelevant to the technical question asked.\n"
        f"2. LENGTH CHECK: Answers shorter than {MIN_RELEVANT_WORDS} words are treated as irrelevant and "
        "receive 1/10 overall and 1/10 for every criterion.\n"
        "3. COMPLETENESS CHECK: For relevant answers, assess whether the answer covers the key concepts "
        "required. Missing important concepts should significantly reduce the score.\n"
        "4. TECHNICAL ACCURACY: For relevant answers, verify that the technical information provided is "
        "correct. Inaccurate information should result in a lower score.\n"
        "5. CODE EVALUATION: If code was submitted, you MUST evaluate it as part of your feedback:\n"
        "   - Is the code correct? Does it solve the problem or implement the concept correctly?\n"
        "   - Is the code relevant to the question asked?\n"
        "   - Is the code well-structured and following best practices?\n"
        '   - Include a section in your feedback that starts with "Code Assessment:" followed by your '
        "evaluation of the code.\n\n"
        "Evaluate this answer based on:\n"
        "1. Technical accuracy (40%)\n"
        "2. Completeness (30%)\n"
        "3. Clarity of explanation (20%)\n"
        "4. Example usage (10%)\n"
        "The overall score is the weighted blend of these four criteria.\n\n"
        "STRICT SCORING GUIDELINES:\n"
        "1: Completely irrelevant, just a greeting, or too short\n"
        "2-3: Poor answer with major gaps or errors\n"
        "4-5: Basic answer with significant gaps\n"
        "6-7: Good answer with minor gaps\n"
        "8-10: Excellent, comprehensive answer\n\n"
        "Provide your evaluation in JSON format with the following structure:\n"
        "{\n"
        '  "score": (a number between 1-10),\n'
        '  "feedback": (detailed feedback including why the score was given and areas for improvement),\n'
        '  "codeEvaluation": (if code was submitted, a specific evaluation of the code starting with '
        '"Code Assessment:"; otherwise omit this field),\n'
        '  "criteria": {\n'
        '    "technicalAccuracy": (score out of 10),\n'
        '    "completeness": (score out of 10),\n'
        '    "clarity": (score out of 10),\n'
        '    "examples": (score out of 10)\n'
        "  }\n"
        "}\n"
    )


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first JSON object embedded in ``text``, or None."""
    stripped = text.strip()
    try:
        data = json.loads(stripped)
        return data if isinstance(data, dict) else None
    except ValueError:
        pass

    decoder = json.JSONDecoder()
    start = stripped.find("{")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(stripped, start)
        except ValueError:
            start = stripped.find("{", start + 1)
            continue
        if isinstance(data, dict):
            return data
        start = stripped.find("{", start + 1)
    return None


def neutral_evaluation(feedback: str) -> Evaluation:
    return Evaluation(
        score=NEUTRAL_SCORE,
        feedback=feedback,
        criteria=Criteria(
            technical_accuracy=NEUTRAL_SCORE,
            completeness=NEUTRAL_SCORE,
            clarity=NEUTRAL_SCORE,
            examples=NEUTRAL_SCORE,
        ),
    )


def parse_evaluation_text(text: str) -> Evaluation:
    data = extract_json_object(text or "")
    if data is None:
        return neutral_evaluation(text or "")

    raw_criteria = data.get("criteria") if isinstance(data.get("criteria"), dict) else {}
    criteria = Criteria(
        technical_accuracy=_clamp(raw_criteria.get("technicalAccuracy")),
        completeness=_clamp(raw_criteria.get("completeness")),
        clarity=_clamp(raw_criteria.get("clarity")),
        examples=_clamp(raw_criteria.get("examples")),
    )
    if "score" in data:
        score = _clamp(data.get("score"))
    else:
        score = weighted_score(criteria)

    feedback = data.get("feedback")
    code_evaluation = data.get("codeEvaluation")
    return Evaluation(
        score=score,
        feedback=feedback if isinstance(feedback, str) else text,
        criteria=criteria,
        code_evaluation=code_evaluation if isinstance(code_evaluation, str) else None,
    )


def extract_code_evaluation(feedback: Optional[str], code: Optional[str], explicit: Optional[str] = None) -> str:
    if not code:
        return ""
    if explicit:
        return explicit
    match = CODE_ASSESSMENT_PATTERN.search(feedback or "")
    if match:
        return match.group(0)
    return GENERIC_CODE_EVALUATION


def _irrelevance_reason(transcript: str) -> Optional[str]:
    if GREETING_PATTERN.fullmatch(transcript):
        return "just a greeting"
    if TEST_MESSAGE_PATTERN.fullmatch(transcript):
        return "just a test message"
    if word_count(transcript) < MIN_RELEVANT_WORDS:
        return "too short"
    return None


def _stack_keywords(tech_stack: Optional[str]) -> List[str]:
    stack = (tech_stack or "").lower()
    keywords: List[str] = []
    for topic, words in STACK_KEYWORDS.items():
        if topic in stack:
            keywords.extend(words)
    return keywords


def _question_keywords(question: str) -> List[str]:
    lowered = question.lower()
    for topic, words in TOPIC_KEYWORDS.items():
        if topic in lowered:
            return list(words)
    return []


def heuristic_evaluation(
    question: str,
    transcript: Optional[str],
    tech_stack: Optional[str] = None,
    code: Optional[str] = None,
) -> Evaluation:
    """Keyword-overlap scoring with no external calls.

    Short, greeting-only and test answers score 1 across the board. Everything else is
    relevance 50%, keyword density 30% and length 20%.
    """
    spoken = (transcript or "").lower()
    written = (code or "").lower()

    reason = _irrelevance_reason(spoken)
    if reason:
        return Evaluation(
            score=IRRELEVANT_SCORE,
            feedback=(
                f"This answer is {reason} and does not address the technical question. A complete answer "
                "should explain the technical concepts in detail. Irrelevant answers receive a score of 1/10."
            ),
            criteria=Criteria(
                technical_accuracy=IRRELEVANT_SCORE,
                completeness=IRRELEVANT_SCORE,
                clarity=IRRELEVANT_SCORE,
                examples=IRRELEVANT_SCORE,
            ),
            evaluation_method="fallback",
        )

    question_keywords = _question_keywords(question)
    keywords = question_keywords + _stack_keywords(tech_stack) + GENERAL_KEYWORDS

    question_hits = sum(1 for kw in question_keywords if kw in spoken or kw in written)
    transcript_hits = sum(1 for kw in keywords if kw in spoken)
    code_hits = sum(1 for kw in keywords if kw in written)

    if question_keywords:
        relevance = min(MAX_SCORE, question_hits / len(question_keywords) * 10)
    else:
        relevance = NEUTRAL_SCORE
    density = min(MAX_SCORE, (transcript_hits + code_hits) / KEYWORD_DENSITY_TARGET * 10)

    transcript_length = len(transcript or "")
    code_length = len(code or "")
    transcript_length_score = min(MAX_SCORE, transcript_length / TRANSCRIPT_LENGTH_TARGET * 10)
    code_length_score = min(MAX_SCORE, code_length / CODE_LENGTH_TARGET * 10)
    if transcript and code:
        length = transcript_length_score * 0.6 + code_length_score * 0.4
    elif transcript:
        length = transcript_length_score
    elif code:
        length = code_length_score
    else:
        length = 0.0

    score = _round1(
        relevance * HEURISTIC_RELEVANCE_WEIGHT
        + density * HEURISTIC_DENSITY_WEIGHT
        + length * HEURISTIC_LENGTH_WEIGHT
    )

    feedback = "This evaluation was generated using a fallback system. "
    if relevance < NEUTRAL_SCORE:
        feedback += "The answer does not seem to directly address the question asked. "
    if transcript:
        feedback += (
            f"Your verbal answer contains {transcript_hits} relevant technical terms "
            f"and is {transcript_length} characters long. "
        )
    if code:
        feedback += (
            f"Your code submission contains {code_hits} relevant technical terms "
            f"and is {code_length} characters long."
        )

    return Evaluation(
        score=min(MAX_SCORE, score),
        feedback=feedback.strip(),
        criteria=Criteria(
            technical_accuracy=_round1(relevance),
            completeness=_round1(density),
            clarity=min(word_count(transcript) / 10, MAX_SCORE) if transcript else 3.0,
            examples=7.0 if ("example" in spoken or len(written) > CODE_EXAMPLE_MIN_CHARS) else 3.0,
        ),
        evaluation_method="fallback",
    )
