import re
from typing import Optional

_RE_NBSP = re.compile(r"[\u00A0\u2007\u202F]")  # non-breaking spaces
_RE_HSPACE = re.compile(r"[ \t\u2000-\u200A\u205F]+")
_RE_TRAIL_SPACE = re.compile(r"[ \t]+(?=\n)")
_RE_INDENT = re.compile(r"^[ \t]+")


def compress_for_llm(
        s: Optional[str],
        *,
        keep_indentation: bool = True,
        max_consecutive_blank_lines: int = 2,
        strip_ends: bool = True,
) -> str:
    """
    Whitespace compression for command output sent back to the model:
    - NBSP-like chars become plain spaces
    - trailing spaces at line ends are dropped
    - runs of horizontal whitespace collapse to one space
      (leading indentation kept unless keep_indentation=False)
    - at most max_consecutive_blank_lines blank lines in a row
    """
    if not s:
        return ""

    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = _RE_NBSP.sub(" ", s)
    s = _RE_TRAIL_SPACE.sub("", s)

    out_lines = []
    for line in s.split("\n"):
        if keep_indentation:
            m = _RE_INDENT.match(line)
            indent = m.group(0) if m else ""
            rest = _RE_HSPACE.sub(" ", line[len(indent):]).strip(" ")
            out_lines.append(indent + rest if rest else "")
        else:
            out_lines.append(_RE_HSPACE.sub(" ", line).strip(" "))
    s = "\n".join(out_lines)

    n = max(0, int(max_consecutive_blank_lines))
    s = re.sub(r"\n{" + str(n + 2) + r",}", "\n" * (n + 1), s)

    if strip_ends:
        s = s.strip()
    return s
