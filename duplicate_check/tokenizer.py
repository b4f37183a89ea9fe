"""
Source tokenization for duplicate checks.

This module turns the text of one source file into a sequence of
position-tagged tokens. Whitespace and comments are dropped; every
token keeps its lexical category and the spelling used for equality
by the matcher.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import javalang

from .errors import MalformedSource, UnsupportedLanguage


class Language(Enum):
    """Languages with a tokenizer."""
    PYTHON3 = "python3"
    CPP = "cpp"
    JAVA = "java"

    @classmethod
    def parse(cls, value: "Language | str") -> "Language":
        """
        Resolve a language from an enum member or a user-facing name.

        Examples:
            >>> Language.parse("py")
            <Language.PYTHON3: 'python3'>
            >>> Language.parse("C++")
            <Language.CPP: 'cpp'>
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            language = _LANGUAGE_ALIASES.get(value.strip().lower())
            if language is not None:
                return language
        raise UnsupportedLanguage(value)

    @property
    def extensions(self) -> tuple[str, ...]:
        """Source file extensions read for this language."""
        return LANGUAGE_EXTENSIONS[self]


_LANGUAGE_ALIASES = {
    "python3": Language.PYTHON3,
    "python": Language.PYTHON3,
    "py": Language.PYTHON3,
    "cpp": Language.CPP,
    "c++": Language.CPP,
    "c/c++": Language.CPP,
    "cc": Language.CPP,
    "c": Language.CPP,
    "java": Language.JAVA,
}

LANGUAGE_EXTENSIONS = {
    Language.PYTHON3: (".py",),
    Language.CPP: (".c", ".cc", ".cpp", ".cxx", ".h", ".hh", ".hpp"),
    Language.JAVA: (".java",),
}


class TokenKind(Enum):
    """Lexical category of a token."""
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    LITERAL = "literal"
    OPERATOR = "operator"
    STRUCTURAL = "structural"


@dataclass(frozen=True)
class Token:
    """A single lexical token. Lines and columns are 1-based."""
    kind: TokenKind
    text: str  # Spelling used for equality, possibly normalized
    source_file: str
    line: int
    column: int
    length: int  # Length of the original lexeme in characters

    @property
    def key(self) -> tuple[TokenKind, str]:
        """Equality key used by the matcher (position is ignored)."""
        return self.kind, self.text


@dataclass(frozen=True)
class TokenizerOptions:
    """Normalization switches applied while tokenizing."""
    normalize_identifiers: bool = False
    normalize_literals: bool = False


IDENTIFIER_PLACEHOLDER = "<identifier>"
LITERAL_PLACEHOLDERS = {
    "number": "<number>",
    "string": "<string>",
    "char": "<char>",
}


PYTHON_KEYWORDS = frozenset({
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else", "except",
    "finally", "for", "from", "global", "if", "import", "in", "is",
    "lambda", "nonlocal", "not", "or", "pass", "raise", "return", "try",
    "while", "with", "yield",
})

CPP_KEYWORDS = frozenset({
    "alignas", "alignof", "auto", "bool", "break", "case", "catch", "char",
    "class", "const", "constexpr", "const_cast", "continue", "decltype",
    "default", "delete", "do", "double", "dynamic_cast", "else", "enum",
    "explicit", "extern", "false", "float", "for", "friend", "goto", "if",
    "inline", "int", "long", "mutable", "namespace", "new", "noexcept",
    "nullptr", "operator", "private", "protected", "public", "register",
    "reinterpret_cast", "return", "short", "signed", "sizeof", "static",
    "static_assert", "static_cast", "struct", "switch", "template", "this",
    "throw", "true", "try", "typedef", "typeid", "typename", "union",
    "unsigned", "using", "virtual", "void", "volatile", "while",
})

PYTHON_OPERATORS = [
    "**=", "//=", ">>=", "<<=", "...", "->", ":=", "**", "//", "<<", ">>",
    "<=", ">=", "==", "!=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
    "@=", "+", "-", "*", "/", "%", "&", "|", "^", "~", "<", ">", "=", ".",
    "@", "!",
]

CPP_OPERATORS = [
    "<<=", ">>=", "->*", "...", "<=>", "->", "::", "++", "--", "<<", ">>",
    "<=", ">=", "==", "!=", "&&", "||", "+=", "-=", "*=", "/=", "%=", "&=",
    "|=", "^=", ".*", "##", "+", "-", "*", "/", "%", "&", "|", "^", "~",
    "!", "<", ">", "=", "?", ":", ".", "#",
]


def _alternation(symbols: list[str]) -> str:
    ordered = sorted(symbols, key=len, reverse=True)
    return "|".join(re.escape(symbol) for symbol in ordered)


@dataclass(frozen=True)
class _LexerRules:
    """Regular expressions describing one language's lexemes."""
    keywords: frozenset
    operators: list
    structural: str
    line_comment: str
    block_comment: bool
    strings: list  # (complete pattern, unterminated opener pattern, literal class)
    number: str
    name: str
    directive: str | None = None


_PYTHON_PREFIX = r"(?i:rb|br|fr|rf|[rbuf])?"
_CPP_PREFIX = r"(?:u8|[uUL])?"

_RULES = {
    Language.PYTHON3: _LexerRules(
        keywords=PYTHON_KEYWORDS,
        operators=PYTHON_OPERATORS,
        structural=r"[()\[\]{};,:]",
        line_comment=r"#[^\n]*",
        block_comment=False,
        strings=[
            (_PYTHON_PREFIX + r"'''(?:\\[\s\S]|[^\\])*?'''", _PYTHON_PREFIX + r"'''", "string"),
            (_PYTHON_PREFIX + r'"""(?:\\[\s\S]|[^\\])*?"""', _PYTHON_PREFIX + r'"""', "string"),
            (_PYTHON_PREFIX + r"'(?:\\[\s\S]|[^'\\\n])*'", _PYTHON_PREFIX + r"'", "string"),
            (_PYTHON_PREFIX + r'"(?:\\[\s\S]|[^"\\\n])*"', _PYTHON_PREFIX + r'"', "string"),
        ],
        number=(
            r"0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+"
            r"|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?[jJ]?"
        ),
        name=r"[^\W\d]\w*",
    ),
    Language.CPP: _LexerRules(
        keywords=CPP_KEYWORDS,
        operators=CPP_OPERATORS,
        structural=r"[()\[\]{};,]",
        line_comment=r"//[^\n]*",
        block_comment=True,
        strings=[
            # Raw string: R"delim( ... )delim", may span lines and hold quotes
            (
                _CPP_PREFIX + r'R"(?P<raw_delimiter>[^()\\\s]{0,16})\([\s\S]*?\)(?P=raw_delimiter)"',
                _CPP_PREFIX + r'R"',
                "string",
            ),
            (_CPP_PREFIX + r'"(?:\\[\s\S]|[^"\\\n])*"', _CPP_PREFIX + r'"', "string"),
            (_CPP_PREFIX + r"'(?:\\[\s\S]|[^'\\\n])*'", _CPP_PREFIX + r"'", "char"),
        ],
        number=(
            r"0[xX][0-9a-fA-F']+[uUlL]*"
            r"|(?:\d[\d']*(?:\.[\d']*)?|\.\d[\d']*)(?:[eE][+-]?\d+)?[uUlLfF]*"
        ),
        name=r"(?:[^\W\d]|\$)[\w$]*",
        directive=r"#[ \t]*[A-Za-z_]\w*",
    ),
}


def _build_token(
    kind: TokenKind,
    lexeme: str,
    literal_class: str | None,
    path: str,
    line: int,
    column: int,
    options: TokenizerOptions,
    text: str | None = None,
) -> Token:
    if text is None:
        text = lexeme
    if kind == TokenKind.IDENTIFIER and options.normalize_identifiers:
        text = IDENTIFIER_PLACEHOLDER
    elif kind == TokenKind.LITERAL and options.normalize_literals:
        text = LITERAL_PLACEHOLDERS[literal_class]
    return Token(
        kind=kind,
        text=text,
        source_file=path,
        line=line,
        column=column,
        length=len(lexeme),
    )


class _Lexer:
    """Compiled regular expression scanner for one language."""

    def __init__(self, rules: _LexerRules):
        self.rules = rules
        groups = [
            ("ws", r"\\\r?\n|\s+"),
            ("comment", rules.line_comment),
        ]
        if rules.block_comment:
            groups.append(("comment", r"/\*[\s\S]*?\*/"))
            groups.append(("open_comment", r"/\*"))
        if rules.directive:
            groups.append(("directive", rules.directive))
        self._literal_classes = {}
        for index, (complete, opener, literal_class) in enumerate(rules.strings):
            groups.append((f"str{index}", complete))
            groups.append((f"open{index}", opener))
            self._literal_classes[f"str{index}"] = literal_class
        groups.extend([
            ("number", rules.number),
            ("name", rules.name),
            ("op", _alternation(rules.operators)),
            ("structural", rules.structural),
            ("other", r"[\s\S]"),
        ])
        # Group names must be unique; number repeated kinds
        pattern = "|".join(
            f"(?P<{name}_{position}>{regex})" for position, (name, regex) in enumerate(groups)
        )
        self._pattern = re.compile(pattern)

    def scan(self, source: str, path: str, options: TokenizerOptions) -> Iterator[Token]:
        line = 1
        line_start = 0
        position = 0
        length = len(source)

        while position < length:
            match = self._pattern.match(source, position)
            group = match.lastgroup.rsplit("_", 1)[0]
            lexeme = match.group()
            column = position - line_start + 1

            if group.startswith("open"):
                if group == "open_comment":
                    reason = "unterminated block comment"
                else:
                    reason = "unterminated string literal"
                raise MalformedSource(path, line, column, reason)

            token = self._make_token(group, lexeme, path, line, column, options)
            if token is not None:
                yield token

            newlines = lexeme.count("\n")
            if newlines:
                line += newlines
                line_start = position + lexeme.rindex("\n") + 1
            position = match.end()

    def _make_token(
        self,
        group: str,
        lexeme: str,
        path: str,
        line: int,
        column: int,
        options: TokenizerOptions,
    ) -> Token | None:
        if group in ("ws", "comment"):
            return None

        literal_class = None
        if group == "name":
            kind = TokenKind.KEYWORD if lexeme in self.rules.keywords else TokenKind.IDENTIFIER
        elif group == "number" or group in self._literal_classes:
            kind = TokenKind.LITERAL
            literal_class = self._literal_classes.get(group, "number")
        elif group == "directive":
            directive = "#" + lexeme[1:].strip()
            return _build_token(TokenKind.STRUCTURAL, lexeme, None, path, line, column, options, text=directive)
        elif group == "structural":
            kind = TokenKind.STRUCTURAL
        else:
            kind = TokenKind.OPERATOR

        return _build_token(kind, lexeme, literal_class, path, line, column, options)


class _JavaLexer:
    """Java scanner built on javalang's tokenizer."""

    def scan(self, source: str, path: str, options: TokenizerOptions) -> Iterator[Token]:
        line, column = 1, 1
        try:
            for java_token in javalang.tokenizer.tokenize(source):
                line, column = java_token.position.line, java_token.position.column
                kind, literal_class = self._classify(java_token)
                yield _build_token(kind, java_token.value, literal_class, path, line, column, options)
                column += len(java_token.value)
        except javalang.tokenizer.LexerError as e:
            # javalang reports no position; use the end of the last good token
            raise MalformedSource(path, line, column, str(e)) from e

    @staticmethod
    def _classify(java_token) -> tuple[TokenKind, str | None]:
        tokenizer = javalang.tokenizer
        if isinstance(java_token, (tokenizer.Keyword, tokenizer.Boolean, tokenizer.Null)):
            return TokenKind.KEYWORD, None
        if isinstance(java_token, tokenizer.Identifier):
            return TokenKind.IDENTIFIER, None
        if isinstance(java_token, tokenizer.Literal):
            if java_token.value.startswith("'"):
                return TokenKind.LITERAL, "char"
            if java_token.value.startswith('"'):
                return TokenKind.LITERAL, "string"
            return TokenKind.LITERAL, "number"
        if isinstance(java_token, tokenizer.Separator) and java_token.value != ".":
            return TokenKind.STRUCTURAL, None
        return TokenKind.OPERATOR, None


_LEXERS = {language: _Lexer(rules) for language, rules in _RULES.items()}
_LEXERS[Language.JAVA] = _JavaLexer()


def tokenize_source(
    source: str,
    language: Language | str,
    path: str = "<source>",
    options: TokenizerOptions | None = None,
) -> tuple[Token, ...]:
    """
    Tokenize the text of one source file.

    Args:
        source: Raw file contents
        language: Declared language (enum member or name such as "python3")
        path: File path recorded on every token
        options: Normalization switches (default: keep spellings verbatim)

    Returns:
        Tuple of tokens in source order. Tokenizing the same text twice
        yields equal tuples.

    Raises:
        UnsupportedLanguage: No tokenizer for the declared language
        MalformedSource: Unterminated string, char literal or block comment

    Examples:
        >>> [t.text for t in tokenize_source("a = 1  # set", "python3")]
        ['a', '=', '1']
    """
    lexer = _LEXERS[Language.parse(language)]
    return tuple(lexer.scan(source, path, options or TokenizerOptions()))
