from app.schemas.quiz import QuizParams
from app.services.quiz_prompts import build_quiz_prompt


def _params(**overrides):
    data = {
        "subject": "Mathematics",
        "topic": "Algebra",
        "numQuestions": 3,
        "complexity": "Easy",
        "timePerQuestion": 30,
    }
    data.update(overrides)
    return QuizParams.model_validate(data)


def test_prompt_is_deterministic():
    assert build_quiz_prompt(_params()) == build_quiz_prompt(_params())


def test_prompt_mentions_every_parameter():
    prompt = build_quiz_prompt(_params(numQuestions=7, complexity="Hard"))
    assert "Create exactly 7 multiple choice questions about Algebra in Mathematics." in prompt
    assert "Difficulty: Hard." in prompt
    assert "exactly 4 answer options" in prompt


def test_prompt_asks_for_bare_json_array():
    prompt = build_quiz_prompt(_params())
    assert "Return ONLY a JSON array" in prompt
    assert "no markdown" in prompt
    assert '"correctOption": 0' in prompt
    assert "```" not in prompt


def test_title_and_timing_do_not_affect_prompt():
    plain = build_quiz_prompt(_params())
    decorated = build_quiz_prompt(_params(title="Unit test", description="desc", timePerQuestion=90))
    assert plain == decorated


def test_different_topics_give_different_prompts():
    assert build_quiz_prompt(_params(topic="Geometry")) != build_quiz_prompt(_params())
