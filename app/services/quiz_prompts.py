"""
Quiz generation prompts.

The prompt is fully determined by the QuizParams: no timestamps, no random
examples, so the same request always renders the same text.
"""

from app.schemas.quiz import QuizParams

OPTIONS_PER_QUESTION = 4

QUIZ_GENERATION_PROMPT = """
Create exactly {num_questions} multiple choice questions about {topic} in {subject}.
Difficulty: {complexity}.

Requirements:
- Every question must have exactly {num_options} answer options
- Exactly one option is correct; "correctOption" is its 0-based index (0 to {max_index})
- Questions must be clear, unambiguous and appropriate for the {complexity} level
- Do not repeat questions

Return ONLY a JSON array in this exact format, with no markdown, no code fences and no text before or after it:

[
  {{
    "text": "Question?",
    "options": ["A", "B", "C", "D"],
    "correctOption": 0
  }}
]
"""


def build_quiz_prompt(params: QuizParams) -> str:
    return QUIZ_GENERATION_PROMPT.format(
        num_questions=params.num_questions,
        topic=params.topic,
        subject=params.subject,
        complexity=params.complexity.value,
        num_options=OPTIONS_PER_QUESTION,
        max_index=OPTIONS_PER_QUESTION - 1,
    ).strip()
