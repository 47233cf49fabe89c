# storyfeed/utils/text_utils.py
from typing import Optional

POST_WORD_LIMIT = 150


def count_words(text: Optional[str]) -> int:
    """공백 기준으로 단어 수를 셉니다. 빈 문자열/공백만 있는 경우 0."""
    if not text:
        return 0
    return len(text.split())


def is_over_limit(text: Optional[str], limit: int = POST_WORD_LIMIT) -> bool:
    return count_words(text) > limit


def is_blank(text: Optional[str]) -> bool:
    return text is None or text.strip() == ""


def author_initials(name: str) -> str:
    """'Jane Doe' -> 'JD'. 아바타 대신 표시되는 이니셜 (최대 2글자)."""
    initials = "".join(part[0] for part in name.split() if part)
    return initials.upper()[:2]


def author_handle(email: Optional[str]) -> str:
    """이메일 앞부분으로 '@handle'을 만듭니다. 이메일이 없으면 '@user'."""
    if not email:
        return "@user"
    return f"@{email.split('@')[0]}"
