import math
from typing import List, Union

from constants import MAX_NESTING

Value = Union[int, float, str]

OPERATORS = '+-*/'
# Integers beyond this are rejected rather than carried as huge ints
MAX_INTEGER_DIGITS = 300
MAX_INTEGER_BITS = 1024


class FormulaError(Exception):
    """Base class for failures that end up as a cell's display text."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class EvaluationError(FormulaError):
    """Malformed expression, type mismatch or arithmetic failure."""


def is_digit(char: str) -> bool:
    # str.isdigit() also accepts superscripts and other Unicode digits
    return '0' <= char <= '9' and len(char) == 1


# Token class represents a single token of an expression with its position
class Token:
    def __init__(self, type, value, position):
        self.type = type          # NUMBER, STRING, OPERATOR, LPAREN, RPAREN or END
        self.value = value
        self.position = position  # 1-based offset into the expression

    def __repr__(self):
        return f"Token({self.type}, {self.value!r}, pos={self.position})"


# Lexer breaks an expression (formula text after '=' with references
# already substituted) into tokens
class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def tokenize(self) -> List[Token]:
        tokens = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char.isspace():
                self.pos += 1
            elif is_digit(char) or (char == '.' and is_digit(self._peek(1))):
                tokens.append(self._number())
            elif char in '"\'':
                tokens.append(self._string(char))
            elif char in OPERATORS:
                tokens.append(Token('OPERATOR', char, self.pos + 1))
                self.pos += 1
            elif char == '(':
                tokens.append(Token('LPAREN', char, self.pos + 1))
                self.pos += 1
            elif char == ')':
                tokens.append(Token('RPAREN', char, self.pos + 1))
                self.pos += 1
            else:
                raise EvaluationError(f"Unexpected character '{char}' at position {self.pos + 1}")
        tokens.append(Token('END', None, len(self.text) + 1))
        return tokens

    def _peek(self, offset: int) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ''

    def _number(self) -> Token:
        start = self.pos
        while self.pos < len(self.text) and is_digit(self.text[self.pos]):
            self.pos += 1
        if self._peek(0) == '.':
            self.pos += 1
            while self.pos < len(self.text) and is_digit(self.text[self.pos]):
                self.pos += 1
        # Exponent only when followed by digits, e.g. 1e3, 2.5E-4
        if self._peek(0) in ('e', 'E'):
            offset = 2 if self._peek(1) in ('+', '-') else 1
            if is_digit(self._peek(offset)):
                self.pos += offset
                while self.pos < len(self.text) and is_digit(self.text[self.pos]):
                    self.pos += 1
        literal = self.text[start:self.pos]
        try:
            if any(c in literal for c in '.eE'):
                value = float(literal)
                if not math.isfinite(value):
                    raise EvaluationError(f"Number out of range at position {start + 1}")
                return Token('NUMBER', value, start + 1)
            if len(literal) > MAX_INTEGER_DIGITS:
                raise EvaluationError(f"Number out of range at position {start + 1}")
            return Token('NUMBER', int(literal), start + 1)
        except ValueError:
            raise EvaluationError(f"Invalid number '{literal}' at position {start + 1}")

    def _string(self, quote: str) -> Token:
        start = self.pos
        self.pos += 1
        chars = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == '\\' and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return Token('STRING', ''.join(chars), start + 1)
            chars.append(char)
            self.pos += 1
        raise EvaluationError(f"Unterminated string at position {start + 1}")


def quote_text(text: str) -> str:
    """Render text as a double-quoted string literal the lexer reads back verbatim."""
    return '"' + text.replace('\\', '\\\\').replace('"', '\\"') + '"'


def format_value(value: Value) -> str:
    """Convert an evaluation result to display text (6.0 shows as 6)."""
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    return str(value)


# Parser evaluates the token stream with recursive descent over a fixed grammar:
#   expression := term (('+' | '-') term)*
#   term       := unary (('*' | '/') unary)*
#   unary      := ('+' | '-') unary | primary
#   primary    := NUMBER | STRING | '(' expression ')'
class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def parse(self) -> Value:
        if self.tokens[0].type == 'END':
            raise EvaluationError("Empty expression")
        value = self._expression()
        token = self._current()
        if token.type != 'END':
            raise EvaluationError(self._error(f"Unexpected '{token.value}'"))
        return value

    def _expression(self) -> Value:
        left = self._term()
        while self._match('OPERATOR', '+') or self._match('OPERATOR', '-'):
            op = self._advance().value
            right = self._term()
            left = apply_operator(op, left, right)
        return left

    def _term(self) -> Value:
        left = self._unary()
        while self._match('OPERATOR', '*') or self._match('OPERATOR', '/'):
            op = self._advance().value
            right = self._unary()
            left = apply_operator(op, left, right)
        return left

    def _unary(self) -> Value:
        if self._match('OPERATOR', '+') or self._match('OPERATOR', '-'):
            op = self._advance().value
            self._enter()
            operand = self._unary()
            self.depth -= 1
            if isinstance(operand, str):
                raise EvaluationError(f"Type mismatch: unary '{op}' on text")
            return -operand if op == '-' else operand
        return self._primary()

    def _primary(self) -> Value:
        token = self._current()
        if token.type in ('NUMBER', 'STRING'):
            self._advance()
            return token.value
        if token.type == 'LPAREN':
            self._advance()
            self._enter()
            value = self._expression()
            self.depth -= 1
            if not self._match('RPAREN'):
                raise EvaluationError(self._error("Expected ')'"))
            self._advance()
            return value
        if token.type == 'END':
            raise EvaluationError("Unexpected end of expression")
        raise EvaluationError(self._error(f"Unexpected '{token.value}'"))

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise EvaluationError("Expression nested too deeply")

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _match(self, type, value=None) -> bool:
        token = self.tokens[self.pos]
        return token.type == type and (value is None or token.value == value)

    def _error(self, message: str) -> str:
        return f"{message} at position {self._current().position}"


def apply_operator(op: str, left: Value, right: Value) -> Value:
    if op == '+' and (isinstance(left, str) or isinstance(right, str)):
        return format_value(left) + format_value(right)
    if isinstance(left, str) or isinstance(right, str):
        raise EvaluationError(f"Type mismatch: cannot apply '{op}' to text")
    try:
        if op == '+':
            result = left + right
        elif op == '-':
            result = left - right
        elif op == '*':
            result = left * right
        else:
            if right == 0:
                raise EvaluationError("Division by zero")
            result = left / right
    except OverflowError:
        raise EvaluationError("Numeric overflow")
    if isinstance(result, float) and not math.isfinite(result):
        raise EvaluationError("Numeric overflow")
    if isinstance(result, int) and result.bit_length() > MAX_INTEGER_BITS:
        raise EvaluationError("Numeric overflow")
    return result


def evaluate(source: str) -> Value:
    """Evaluate an arithmetic/string expression. Raises EvaluationError on failure."""
    return Parser(Lexer(source).tokenize()).parse()
