"""SQL query validation - read-only enforcement for caller-supplied query text

The gate runs before any database access. A query is normalized, its literal
contents are masked, and an ordered list of rules is evaluated; the first rule
that fails decides the rejection. Rejections are returned as values, never
raised.
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Callable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from sqlgate_mcp.config import ValidatorLimits

DEFAULT_LIMITS = ValidatorLimits()

_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
# Block comments may span lines
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_SPACING_RE = re.compile(r"\s*([(),;])\s*")
_LITERAL_RE = re.compile(r"'[^']*'|\"[^\"]*\"|\[[^\]]*\]")
_SELECT_INTO_RE = re.compile(r"\bSELECT\b.*\bINTO\b")
_HEX_LITERAL_RE = re.compile(r"\b0X[0-9A-F]+")
_CHAR_FUNCTION_RE = re.compile(r"\bN?CHAR\s*\(")
_UNION_RE = re.compile(r"\bUNION\b")
_SELECT_RE = re.compile(r"\bSELECT\b")

_READ_ONLY_PREFIXES = ("SELECT", "WITH")
_ALLOWED_CONTROL_CHARS = frozenset("\n\r\t")


class RejectionReason(str, Enum):
    """Closed set of reasons a query can be rejected for"""
    EMPTY_QUERY = "empty_query"
    QUERY_TOO_LONG = "query_too_long"
    NOT_READ_ONLY = "not_read_only"
    FORBIDDEN_COMMAND = "forbidden_command"
    FORBIDDEN_FUNCTION = "forbidden_function"
    SELECT_INTO = "select_into"
    MULTIPLE_STATEMENTS = "multiple_statements"
    TOO_MANY_UNIONS = "too_many_unions"
    SUSPICIOUS_CONTROL_CHAR = "suspicious_control_char"
    EXCESSIVE_ENCODING = "excessive_encoding"
    EXCESSIVE_OBFUSCATION = "excessive_obfuscation"
    TIMING_FUNCTION = "timing_function"
    TOO_MANY_SUBQUERIES = "too_many_subqueries"
    UNBALANCED_PARENTHESES = "unbalanced_parentheses"
    EXCESSIVE_NESTING = "excessive_nesting"


class ValidationOutcome(BaseModel):
    """Result of validating one query: accepted, or rejected with a reason"""
    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: Optional[RejectionReason] = None
    subject: Optional[str] = None
    detail: str = ""

    @classmethod
    def reject(cls, reason: RejectionReason, detail: str, subject: Optional[str] = None) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason, subject=subject, detail=detail)

    def __bool__(self) -> bool:
        return self.accepted


ACCEPTED = ValidationOutcome(accepted=True)


class RuleContext(BaseModel):
    """The three views of one query that rules are evaluated against"""
    model_config = ConfigDict(frozen=True)

    raw: str
    normalized: str
    masked: str

    @classmethod
    def from_query(cls, query: str) -> "RuleContext":
        normalized = normalize(query)
        return cls(raw=query, normalized=normalized, masked=mask_literals(normalized))


def normalize(query: str) -> str:
    """Strip comments and irregular whitespace and upper-case the query"""
    query = _LINE_COMMENT_RE.sub(" ", query)
    query = _BLOCK_COMMENT_RE.sub(" ", query)
    query = _WHITESPACE_RE.sub(" ", query)
    query = _PUNCTUATION_SPACING_RE.sub(r"\1", query)
    return query.strip().upper()


def _empty_literal(match: "re.Match[str]") -> str:
    literal = match.group(0)
    return literal[0] + literal[-1]


def mask_literals(normalized: str) -> str:
    """Replace the contents of quoted and bracketed literals with empty placeholders"""
    return _LITERAL_RE.sub(_empty_literal, normalized)


class _ScanState(Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPE_PENDING = "escape_pending"


def scan_statements(query: str) -> ValidationOutcome:
    """Reject a semicolon outside string literals unless only whitespace follows it"""
    state = _ScanState.NORMAL
    resume = _ScanState.NORMAL

    for i, char in enumerate(query):
        if state is _ScanState.ESCAPE_PENDING:
            state = resume
            continue
        if char == "\\":
            resume, state = state, _ScanState.ESCAPE_PENDING
            continue
        if char == "'":
            state = _ScanState.IN_STRING if state is _ScanState.NORMAL else _ScanState.NORMAL
            continue
        if state is _ScanState.NORMAL and char == ";" and query[i + 1:].strip():
            return ValidationOutcome.reject(
                RejectionReason.MULTIPLE_STATEMENTS, "multiple commands are not allowed"
            )

    return ACCEPTED


def analyze_parentheses(query: str, max_depth: int = DEFAULT_LIMITS.max_parentheses_depth) -> ValidationOutcome:
    """Check parenthesis balance and nesting depth over the raw query text.

    Parentheses inside literals are counted as well.
    """
    depth = 0
    deepest = 0

    for char in query:
        if char == "(":
            depth += 1
            deepest = max(deepest, depth)
        elif char == ")":
            depth -= 1

    if depth != 0:
        return ValidationOutcome.reject(RejectionReason.UNBALANCED_PARENTHESES, "unbalanced parentheses")
    if deepest > max_depth:
        return ValidationOutcome.reject(
            RejectionReason.EXCESSIVE_NESTING,
            f"parenthesis depth too large (maximum {max_depth})",
            subject=str(max_depth),
        )
    return ACCEPTED


def _compile_keywords(*keywords: str) -> "MappingProxyType[str, re.Pattern[str]]":
    return MappingProxyType({kw: re.compile(rf"\b{re.escape(kw)}\b") for kw in keywords})


# Whole-word keyword tables, compiled once at import time and never mutated.
# Each entry pairs a table with the message prefix used when it matches.
_FORBIDDEN_COMMANDS = (
    (_compile_keywords("INSERT", "UPDATE", "DELETE", "TRUNCATE", "MERGE"), "command not allowed"),
    (_compile_keywords("DROP", "CREATE", "ALTER", "RENAME"), "command not allowed"),
    (_compile_keywords("EXEC", "EXECUTE", "SP_EXECUTESQL", "XP_CMDSHELL"), "command not allowed"),
    (_compile_keywords("BACKUP", "RESTORE", "DUMP"), "command not allowed"),
    (_compile_keywords("SHUTDOWN", "RECONFIGURE", "DBCC", "KILL"), "administrative command not allowed"),
    (_compile_keywords("GRANT", "REVOKE", "DENY"), "security command not allowed"),
)
_TIMING_FUNCTIONS = _compile_keywords("WAITFOR", "DELAY", "SLEEP", "BENCHMARK")

# Plain substrings, matched anywhere in the masked text
_TRANSACTION_COMMANDS = ("BEGIN TRANSACTION", "BEGIN TRAN", "COMMIT", "ROLLBACK", "SAVE TRANSACTION")
_DANGEROUS_FUNCTIONS = (
    "XP_", "SP_CONFIGURE", "SP_ADDSRVROLEMEMBER", "SP_ADDLOGIN",
    "OPENROWSET", "OPENDATASOURCE", "OPENQUERY",
    "BULK INSERT", "BCP",
)


def _query_too_long(limits: ValidatorLimits) -> ValidationOutcome:
    return ValidationOutcome.reject(
        RejectionReason.QUERY_TOO_LONG,
        f"query too long (maximum {limits.max_query_length} characters)",
        subject=str(limits.max_query_length),
    )


def _check_length(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if len(ctx.raw) > limits.max_query_length:
        return _query_too_long(limits)
    return ACCEPTED


def _check_empty(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if not ctx.raw.strip():
        return ValidationOutcome.reject(RejectionReason.EMPTY_QUERY, "empty query")
    return ACCEPTED


def _check_read_only_entry(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if not ctx.normalized.startswith(_READ_ONLY_PREFIXES):
        return ValidationOutcome.reject(RejectionReason.NOT_READ_ONLY, "only SELECT or WITH queries are allowed")
    return ACCEPTED


def _check_forbidden_commands(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    for patterns, message in _FORBIDDEN_COMMANDS:
        for keyword, pattern in patterns.items():
            if pattern.search(ctx.masked):
                return ValidationOutcome.reject(
                    RejectionReason.FORBIDDEN_COMMAND, f"{message}: {keyword}", subject=keyword
                )
    return ACCEPTED


def _check_transactions(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    for command in _TRANSACTION_COMMANDS:
        if command in ctx.masked:
            return ValidationOutcome.reject(
                RejectionReason.FORBIDDEN_COMMAND,
                f"transaction commands are not allowed: {command}",
                subject=command,
            )
    return ACCEPTED


def _check_dangerous_functions(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    for name in _DANGEROUS_FUNCTIONS:
        if name in ctx.masked:
            return ValidationOutcome.reject(
                RejectionReason.FORBIDDEN_FUNCTION, f"dangerous function not permitted: {name}", subject=name
            )
    return ACCEPTED


def _check_statement_separators(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    return scan_statements(ctx.raw)


def _check_select_into(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if _SELECT_INTO_RE.search(ctx.masked):
        return ValidationOutcome.reject(RejectionReason.SELECT_INTO, "SELECT INTO is not allowed")
    return ACCEPTED


def _check_stacked_queries(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    # One trailing separator was already allowed by the scanner
    masked = ctx.masked[:-1] if ctx.masked.endswith(";") else ctx.masked
    if ";" in masked:
        return ValidationOutcome.reject(RejectionReason.MULTIPLE_STATEMENTS, "multiple commands are not allowed")
    return ACCEPTED


def _check_unions(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if len(_UNION_RE.findall(ctx.masked)) > limits.max_union_count:
        return ValidationOutcome.reject(
            RejectionReason.TOO_MANY_UNIONS,
            f"too many UNION clauses (maximum {limits.max_union_count})",
            subject=str(limits.max_union_count),
        )
    return ACCEPTED


def _check_control_chars(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    for char in ctx.raw:
        if ord(char) < 0x20 and char not in _ALLOWED_CONTROL_CHARS:
            return ValidationOutcome.reject(
                RejectionReason.SUSPICIOUS_CONTROL_CHAR,
                "suspicious control character detected",
                subject=f"0x{ord(char):02x}",
            )
    return ACCEPTED


def _check_hex_encoding(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if len(_HEX_LITERAL_RE.findall(ctx.masked)) > limits.max_hex_encoding_count:
        return ValidationOutcome.reject(
            RejectionReason.EXCESSIVE_ENCODING,
            f"excessive use of hexadecimal encoding (maximum {limits.max_hex_encoding_count})",
            subject=str(limits.max_hex_encoding_count),
        )
    return ACCEPTED


def _check_char_functions(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    if len(_CHAR_FUNCTION_RE.findall(ctx.masked)) > limits.max_char_function_count:
        return ValidationOutcome.reject(
            RejectionReason.EXCESSIVE_OBFUSCATION,
            f"excessive use of CHAR/NCHAR, possible obfuscation (maximum {limits.max_char_function_count})",
            subject=str(limits.max_char_function_count),
        )
    return ACCEPTED


def _check_timing_functions(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    for name, pattern in _TIMING_FUNCTIONS.items():
        if pattern.search(ctx.masked):
            return ValidationOutcome.reject(
                RejectionReason.TIMING_FUNCTION, f"time function not allowed: {name}", subject=name
            )
    return ACCEPTED


def _check_subqueries(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    # Counts every SELECT, the leading one included
    if len(_SELECT_RE.findall(ctx.masked)) > limits.max_subquery_count:
        return ValidationOutcome.reject(
            RejectionReason.TOO_MANY_SUBQUERIES,
            f"too many subqueries (maximum {limits.max_subquery_count})",
            subject=str(limits.max_subquery_count),
        )
    return ACCEPTED


def _check_parentheses(ctx: RuleContext, limits: ValidatorLimits) -> ValidationOutcome:
    return analyze_parentheses(ctx.raw, limits.max_parentheses_depth)


Rule = Callable[[RuleContext, ValidatorLimits], ValidationOutcome]

# Evaluated in order; the first failing rule decides the rejection
RULES: Tuple[Rule, ...] = (
    _check_length,
    _check_empty,
    _check_read_only_entry,
    _check_forbidden_commands,
    _check_transactions,
    _check_dangerous_functions,
    _check_statement_separators,
    _check_select_into,
    _check_stacked_queries,
    _check_unions,
    _check_control_chars,
    _check_hex_encoding,
    _check_char_functions,
    _check_timing_functions,
    _check_subqueries,
    _check_parentheses,
)


def validate(query: str, limits: ValidatorLimits = DEFAULT_LIMITS) -> ValidationOutcome:
    """Decide whether a caller-supplied query is safe to run on a read-only connection"""
    # Bound the work done on oversized input before normalizing it
    if len(query) > limits.max_query_length:
        return _query_too_long(limits)

    ctx = RuleContext.from_query(query)
    for rule in RULES:
        outcome = rule(ctx, limits)
        if not outcome:
            return outcome
    return ACCEPTED


class ReadOnlyQueryValidator:
    """Query validator bound to one set of thresholds"""

    def __init__(self, limits: Optional[ValidatorLimits] = None):
        self.limits = limits or DEFAULT_LIMITS

    def validate(self, query: str) -> ValidationOutcome:
        return validate(query, self.limits)

    def is_read_only_query(self, query: str) -> bool:
        return self.validate(query).accepted
