"""Naming and sanitization utilities for cloud object keys.

Game and memo titles become path segments in the bucket. The same
sanitizer must be used on every call site that builds a key so that
:func:`extract_memo_info` can map a key back to its parts.
"""
import re
from typing import Tuple

MAX_SEGMENT_LENGTH = 100

_UNSAFE_CHARS = str.maketrans({c: '_' for c in '<>:"/\\|?* '})
_MEMO_PATH_RE = re.compile(r'^games/([^/]+)/memo/(.+)_([^_]+)\.md$')


def sanitize_for_cloud_path(name: str) -> str:
    """Sanitize a title for use as a cloud path segment.

    Spaces and the characters ``< > : " / \\ | ? *`` become underscores,
    runs of underscores collapse to one, leading/trailing underscores are
    removed and the result is truncated to 100 characters.

    Example:
        >>> sanitize_for_cloud_path("My Game: Prologue")
        'My_Game_Prologue'
        >>> sanitize_for_cloud_path("  a//b  ")
        'a_b'
    """
    if not name:
        return ''

    result = name.translate(_UNSAFE_CHARS)
    result = re.sub(r'_+', '_', result)
    result = result.strip('_')
    return result[:MAX_SEGMENT_LENGTH]


def sanitize_title(title: str) -> str:
    """Replace path-unsafe characters without collapsing or trimming.

    Used for the save-data prefix, which keeps spaces and repeated
    underscores as they appear in the title.

    Example:
        >>> sanitize_title('Fate/stay night')
        'Fate_stay night'
    """
    return re.sub(r'[<>:"/\\|?*]', '_', title or '')


def build_memo_path(game_title: str, memo_title: str, memo_id: str) -> str:
    """Build the object key of a memo.

    Example:
        >>> build_memo_path("My Game", "Notes", "abc123")
        'games/My_Game/memo/Notes_abc123.md'
    """
    return (f"games/{sanitize_for_cloud_path(game_title)}/memo/"
            f"{sanitize_for_cloud_path(memo_title)}_{memo_id}.md")


def build_memo_prefix(game_title: str) -> str:
    """Prefix holding every memo of a game (``games/`` for a blank title)."""
    if not (game_title or '').strip():
        return 'games/'
    return f"games/{sanitize_for_cloud_path(game_title)}/memo/"


def is_memo_path(path: str) -> bool:
    """Check whether an object key looks like a memo file."""
    return '/memo/' in path and path.endswith('.md')


def extract_memo_info(path: str) -> Tuple[str, str, str, bool]:
    """Split a memo key into (game title, memo title, memo id, ok).

    Example:
        >>> extract_memo_info("games/My_Game/memo/Notes_abc123.md")
        ('My_Game', 'Notes', 'abc123', True)
        >>> extract_memo_info("games/My_Game/save_data/slot1.dat")
        ('', '', '', False)
    """
    match = _MEMO_PATH_RE.match(path)
    if not match:
        return '', '', '', False
    return match.group(1), match.group(2), match.group(3), True
