"""Tutor system prompt and few-shot examples."""

from haskify.models.tutor import ChatTurn

EXAMPLE_TURNS: tuple[ChatTurn, ...] = (
    ChatTurn(
        role="system",
        content=(
            'Example 1:\nUser: "I\'m stuck with recursion"\nAssistant: "Try this:\n'
            "```python\ndef factorial(n):\n    if n == 0:\n        return ?\n"
            '    return n * ?\n```\nWhat should the base case return?"'
        ),
    ),
    ChatTurn(
        role="system",
        content=(
            'Example 2:\nUser: "My code has a TypeError"\nAssistant: "Print type(x) '
            'just before the failing line. Which types does the operator get?"'
        ),
    ),
    ChatTurn(
        role="system",
        content=(
            'Example 3:\nUser: "Write a reverse function"\nAssistant: "```python\n'
            "def reverse(items):\n    result = []\n    for item in items:\n"
            '        result.insert(?, item)\n    return result\n```\nWhere should each item go?"'
        ),
    ),
)

TUTOR_RULES = """You are a concise Python tutor. MAXIMUM 50 words per response.

RULES:
1. ONLY Python and programming questions
2. Prefer information from CONTEXT if provided; if missing, say you don't know.
3. NO complete solutions and code - only hints
4. Use ? placeholders
5. One short code example max
6. Do not answer non-Python topics; if off-topic, say you're focused on Python."""


def build_tutor_prompt(*, code: str = "", output: str = "", context_block: str = "") -> str:
    """System prompt for a tutor reply.

    Args:
        code: Student's current editor contents
        output: Output of the student's last run, if any
        context_block: Assembled retrieval context (may be empty)
    """
    parts = [TUTOR_RULES, "", "Current code:", f"```python\n{code}\n```"]
    if output:
        parts.append(f"Output: ```{output}```")
    if context_block:
        parts.append("")
        parts.append(context_block)
    parts.append("")
    parts.append("Keep it short. Hints only.")
    return "\n".join(parts)


def build_tutor_turns(query: str) -> list[ChatTurn]:
    """Few-shot examples followed by the student's question."""
    return [*EXAMPLE_TURNS, ChatTurn(role="user", content=query)]
