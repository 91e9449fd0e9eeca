"""Cheap pre-checks that decide whether a question reaches the language model."""

import re

GREETING_REPLY = (
    "Hi! I focus on Python and programming. Ask me about variables, loops, "
    "functions, errors in your code, etc."
)
OFF_TOPIC_REPLY = (
    "I'm focused on Python and programming. Ask me about programming concepts, "
    "debugging errors, or improving your code."
)

GREETINGS = (
    "test",
    "hello",
    "hi",
    "hey",
    "ok",
    "yes",
    "no",
    "cool",
    "nice",
    "just testing",
    "i am just testing",
    "hello there",
    "hi there",
    "hallo",
    "halo",
)

PROGRAMMING_KEYWORDS = (
    "python",
    "code",
    "program",
    "variable",
    "function",
    "loop",
    "list",
    "dict",
    "tuple",
    "string",
    "integer",
    "float",
    "class",
    "object",
    "method",
    "recursion",
    "return",
    "import",
    "module",
    "exception",
    "error",
    "traceback",
    "syntax",
    "indent",
    "debug",
    "compile",
    "type",
    "lambda",
    "iterate",
    "index",
    "array",
    "algorithm",
)

CODE_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"\bdef\s+\w+\s*\(",
        r"\bprint\s*\(",
        r"\bfor\s+\w+\s+in\b",
        r"\bwhile\b.*:",
        r"\bif\b.*:",
        r"\w+\s*\(.*\)",
        r"\[.*\]",
        r"==|!=|<=|>=",
        r"\brange\s*\(",
        r"\blen\s*\(",
    )
)

QUESTION_WORDS = ("how", "what", "why", "when", "where", "which")
CODE_REQUEST_WORDS = ("code", "show", "write", "create", "make", "implement")

# Messages at least this long are never treated as greetings
_GREETING_MAX_LEN = 20


def is_greeting(query: str) -> bool:
    """True for short test messages and greetings."""
    q = (query or "").lower().strip()
    return any(q == g or (g in q and len(q) < _GREETING_MAX_LEN) for g in GREETINGS)


def is_programming_question(query: str) -> bool:
    """True if the question mentions programming or contains code.

    A clear question ("how ... ?") that asks for code also qualifies.
    """
    text = query or ""
    q = text.lower()

    if any(k in q for k in PROGRAMMING_KEYWORDS):
        return True
    if any(p.search(text) for p in CODE_PATTERNS):
        return True

    is_clear_question = "?" in text and any(w in q for w in QUESTION_WORDS)
    is_code_request = any(w in q for w in CODE_REQUEST_WORDS)
    return is_clear_question and is_code_request


def canned_reply(query: str) -> str | None:
    """Reply to send without calling the model, or None to proceed."""
    if is_greeting(query):
        return GREETING_REPLY
    if not is_programming_question(query):
        return OFF_TOPIC_REPLY
    return None
