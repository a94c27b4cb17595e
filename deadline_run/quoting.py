"""
quoting.py

turns an argument vector into a single windows-style command line, and back.

quote_arg follows the CommandLineToArgvW unquoting rule, so a child that splits
its command line the standard way recovers every argument unchanged:

- 2n backslashes followed by a quote give n backslashes and a delimiter
- 2n+1 backslashes followed by a quote give n backslashes and a literal quote
- backslashes not followed by a quote are literal
"""

from __future__ import annotations

from collections.abc import Iterable

_NEEDS_QUOTING = frozenset(" \t\n\v\"")
_SEPARATORS = " \t"


def quote_arg(token: str, force: bool = False) -> str:
    if not force and token and not any(ch in _NEEDS_QUOTING for ch in token):
        return token

    out = ['"']
    i, n = 0, len(token)
    while True:
        backslashes = 0
        while i < n and token[i] == "\\":
            i += 1
            backslashes += 1

        if i == n:
            # the closing quote added below must stay a delimiter
            out.append("\\" * (backslashes * 2))
            break
        if token[i] == '"':
            out.append("\\" * (backslashes * 2 + 1))
        else:
            out.append("\\" * backslashes)
        out.append(token[i])
        i += 1

    out.append('"')
    return "".join(out)


def build_command_line(tokens: Iterable[str]) -> str:
    # each token is escaped on its own, no cross-token escaping is needed
    return " ".join(quote_arg(t) for t in tokens)


def split_command_line(command_line: str) -> list[str]:
    """
    recover the argument vector from a command line using the standard
    windows c runtime rule. every token, including the first, is parsed with
    the same rule, which matches what quote_arg produces.
    """
    args: list[str] = []
    buf: list[str] = []
    in_token = False
    in_quotes = False
    i, n = 0, len(command_line)

    while i < n:
        ch = command_line[i]

        if ch == "\\":
            j = i
            while j < n and command_line[j] == "\\":
                j += 1
            count = j - i
            if j < n and command_line[j] == '"':
                buf.append("\\" * (count // 2))
                if count % 2:
                    buf.append('"')
                    j += 1
            else:
                buf.append("\\" * count)
            in_token = True
            i = j
            continue

        if ch == '"':
            in_token = True
            if in_quotes and i + 1 < n and command_line[i + 1] == '"':
                buf.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if ch in _SEPARATORS and not in_quotes:
            if in_token:
                args.append("".join(buf))
                buf = []
                in_token = False
            i += 1
            continue

        buf.append(ch)
        in_token = True
        i += 1

    if in_token:
        args.append("".join(buf))
    return args
