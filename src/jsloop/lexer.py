"""JavaScript lexer (tokenizer) for the supported subset."""

from typing import Iterator, Tuple
from .tokens import Token, TokenType, KEYWORDS
from .errors import JSSyntaxError


# Escapes that map directly to a single character
SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    "'": "'",
    '"': '"',
}

SINGLE_CHAR_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    "?": TokenType.QUESTION,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
}


class Lexer:
    """Tokenizes JavaScript source code."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)

    def save(self) -> Tuple[int, int, int]:
        """Capture the read position so the parser can look ahead."""
        return self.pos, self.line, self.column

    def restore(self, state: Tuple[int, int, int]) -> None:
        """Rewind to a position captured by ``save``."""
        self.pos, self.line, self.column = state

    def _current(self) -> str:
        """Get current character or empty string if at end."""
        if self.pos >= self.length:
            return ""
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> str:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= self.length:
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Advance and return current character."""
        if self.pos >= self.length:
            return ""
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        """Skip whitespace and comments."""
        while self.pos < self.length:
            ch = self._current()

            if ch in " \t\r\n\ufeff":
                self._advance()
                continue

            # Single-line comment
            if ch == "/" and self._peek() == "/":
                while self._current() and self._current() != "\n":
                    self._advance()
                continue

            # Multi-line comment
            if ch == "/" and self._peek() == "*":
                line, column = self.line, self.column
                self._advance()  # /
                self._advance()  # *
                while True:
                    if self.pos >= self.length:
                        raise JSSyntaxError("Unterminated comment", line, column)
                    if self._current() == "*" and self._peek() == "/":
                        self._advance()  # *
                        self._advance()  # /
                        break
                    self._advance()
                continue

            break

    def _read_string(self, quote: str) -> str:
        """Read a string literal."""
        line, column = self.line, self.column
        result = []
        self._advance()  # Skip opening quote

        while self._current() and self._current() != quote:
            ch = self._advance()

            if ch == "\\":
                escape = self._advance()
                if escape in SIMPLE_ESCAPES:
                    result.append(SIMPLE_ESCAPES[escape])
                elif escape in "xu":
                    width = 2 if escape == "x" else 4
                    hex_chars = "".join(self._advance() for _ in range(width))
                    try:
                        result.append(chr(int(hex_chars, 16)))
                    except ValueError:
                        raise JSSyntaxError(
                            f"Invalid escape: \\{escape}{hex_chars}",
                            self.line,
                            self.column,
                        )
                else:
                    # Unknown escape - just use the character
                    result.append(escape)
            elif ch == "\n":
                raise JSSyntaxError("Unterminated string literal", line, column)
            else:
                result.append(ch)

        if not self._current():
            raise JSSyntaxError("Unterminated string literal", line, column)

        self._advance()  # Skip closing quote
        return "".join(result)

    def _read_number(self) -> float | int:
        """Read a decimal or hexadecimal number literal."""
        start = self.pos
        line = self.line
        col = self.column

        if self._current() == "0" and self._peek() in ("x", "X"):
            self._advance()  # 0
            self._advance()  # x
            hex_str = ""
            while self._current() and self._current() in "0123456789abcdefABCDEF":
                hex_str += self._advance()
            if not hex_str:
                raise JSSyntaxError("Invalid hex literal", line, col)
            return int(hex_str, 16)

        while self._current().isdigit():
            self._advance()

        is_float = False
        if self._current() == "." and self._peek().isdigit():
            is_float = True
            self._advance()  # .
            while self._current().isdigit():
                self._advance()

        if self._current() and self._current() in "eE":
            is_float = True
            self._advance()
            if self._current() and self._current() in "+-":
                self._advance()
            if not self._current().isdigit():
                raise JSSyntaxError("Invalid number literal", line, col)
            while self._current().isdigit():
                self._advance()

        if self._current().isalpha() or self._current() in ("_", "$"):
            raise JSSyntaxError("Identifier directly after number", line, col)

        num_str = self.source[start : self.pos]
        if is_float:
            return float(num_str)
        return int(num_str)

    def _read_identifier(self) -> str:
        """Read an identifier."""
        start = self.pos
        while self._current() and (
            self._current().isalnum() or self._current() in "_$"
        ):
            self._advance()
        return self.source[start : self.pos]

    def next_token(self) -> Token:
        """Get the next token."""
        self._skip_whitespace()

        line = self.line
        column = self.column

        if self.pos >= self.length:
            return Token(TokenType.EOF, None, line, column)

        ch = self._current()

        if ch in "'\"":
            return Token(TokenType.STRING, self._read_string(ch), line, column)

        if ch.isdigit() or (ch == "." and self._peek().isdigit()):
            return Token(TokenType.NUMBER, self._read_number(), line, column)

        if ch.isalpha() or ch in "_$":
            value = self._read_identifier()
            token_type = KEYWORDS.get(value, TokenType.IDENTIFIER)
            return Token(token_type, value, line, column)

        self._advance()

        if ch == "=":
            if self._current() == "=":
                self._advance()
                if self._current() == "=":
                    self._advance()
                    return Token(TokenType.EQEQ, "===", line, column)
                return Token(TokenType.EQ, "==", line, column)
            if self._current() == ">":
                self._advance()
                return Token(TokenType.ARROW, "=>", line, column)
            return Token(TokenType.ASSIGN, "=", line, column)

        if ch == "!":
            if self._current() == "=":
                self._advance()
                if self._current() == "=":
                    self._advance()
                    return Token(TokenType.NENE, "!==", line, column)
                return Token(TokenType.NE, "!=", line, column)
            return Token(TokenType.NOT, "!", line, column)

        if ch in "<>":
            if self._current() == "=":
                self._advance()
                if ch == "<":
                    return Token(TokenType.LE, "<=", line, column)
                return Token(TokenType.GE, ">=", line, column)
            if ch == "<":
                return Token(TokenType.LT, "<", line, column)
            return Token(TokenType.GT, ">", line, column)

        if ch == "&" and self._current() == "&":
            self._advance()
            return Token(TokenType.AND, "&&", line, column)

        if ch == "|" and self._current() == "|":
            self._advance()
            return Token(TokenType.OR, "||", line, column)

        if ch == "+":
            if self._current() == "+":
                self._advance()
                return Token(TokenType.PLUSPLUS, "++", line, column)
            if self._current() == "=":
                self._advance()
                return Token(TokenType.PLUS_ASSIGN, "+=", line, column)
            return Token(TokenType.PLUS, "+", line, column)

        if ch == "-":
            if self._current() == "-":
                self._advance()
                return Token(TokenType.MINUSMINUS, "--", line, column)
            if self._current() == "=":
                self._advance()
                return Token(TokenType.MINUS_ASSIGN, "-=", line, column)
            return Token(TokenType.MINUS, "-", line, column)

        if ch in SINGLE_CHAR_TOKENS:
            return Token(SINGLE_CHAR_TOKENS[ch], ch, line, column)

        raise JSSyntaxError(f"Unexpected character: {ch!r}", line, column)

    def tokenize(self) -> Iterator[Token]:
        """Tokenize the entire source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break
