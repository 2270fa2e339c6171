from coursebot.core.models import ChatTurn

BASE_SYSTEM_PROMPT = (
    "You are a study assistant for a university course. Help students understand the course "
    "material: give clear, accurate explanations, cite the course materials you rely on, and "
    "encourage critical thinking. If you are unsure about something, say so and point the "
    "student back to their course materials. You are here to help students learn, not to "
    "replace their course materials or instructors."
)

MODE_PROMPTS = {
    "tutor": (
        "You are in tutor mode. The student needs guidance. Provide clear explanations, "
        "examples, and step-by-step help."
    ),
    "protege": (
        "You are in protege mode. The student has demonstrated good understanding. Engage them "
        "as a study partner, ask follow-up questions, and explore topics together."
    ),
}

GROUNDED_INSTRUCTIONS = "Use only the provided course context to answer. Cite which unit a fact came from."

GENERAL_KNOWLEDGE_INSTRUCTIONS = (
    "The course materials are temporarily unavailable. Answer from general knowledge, keep to "
    "the scope of the course, and tell the student that the answer is not drawn from their "
    "course materials."
)


def system_prompt(mode: str = "tutor") -> str:
    return f"{BASE_SYSTEM_PROMPT}\n\n{MODE_PROMPTS.get(mode, MODE_PROMPTS['tutor'])}"


def format_history(history: list[ChatTurn], question: str) -> str:
    lines = []
    for turn in history:
        speaker = "Student" if turn.role == "user" else "Tutor"
        lines.append(f"{speaker}: {turn.content}")
    lines.append(f"Student: {question}")
    return "\n\n".join(lines)


def build_prompt(question: str, context: str, history: list[ChatTurn] | None = None) -> str:
    if history:
        return f"""{GROUNDED_INSTRUCTIONS}

Course context:
{context}

Previous conversation:
{format_history(history, question)}"""
    return f"""{GROUNDED_INSTRUCTIONS}

Course context:
{context}

Student question: {question}"""


def build_general_prompt(question: str, history: list[ChatTurn] | None = None) -> str:
    if history:
        return f"""{GENERAL_KNOWLEDGE_INSTRUCTIONS}

Previous conversation:
{format_history(history, question)}"""
    return f"""{GENERAL_KNOWLEDGE_INSTRUCTIONS}

Student question: {question}"""


def build_continuation_prompt(answer_so_far: str, tail_chars: int = 200) -> str:
    tail = answer_so_far[-tail_chars:]
    return (
        "Continue the previous answer. Do not repeat earlier content. "
        f'Pick up seamlessly from here: "{tail}"'
    )
