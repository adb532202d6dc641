"""
Integrity problems and the aggregating IntegrityError.

An IntegrityProblem is one atomic description of a content/hash violation.
An IntegrityError carries any number of them, so a single exception can
report every file that failed a batch verification without losing the
individual details:

    problems = [IntegrityProblem.hash_mismatch(exp, act) for exp, act in bad]
    raise IntegrityError("Asset bundle is corrupt", *problems)

The rendered message lists at most MAX_RENDERED_PROBLEMS problems and
summarises the rest, so errors with thousands of problems stay readable.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from masshash.core.exceptions import MassHashError

# Rule #2: Fixed upper bound on rendered problem lines
MAX_RENDERED_PROBLEMS = 30


@dataclass(frozen=True)
class IntegrityProblem:
    """
    A single integrity violation.

    Attributes:
        kind: Short category, e.g. "HashMismatch" or an exception type name.
        detail: Human readable description.
        expected_hash: Expected hash, when the problem is hash-aware.
        actual_hash: Hash actually computed, when known.
    """

    kind: str
    detail: str
    expected_hash: Optional[str] = None
    actual_hash: Optional[str] = None

    @property
    def message(self) -> str:
        """Short description of the problem."""
        return f"{self.kind}: {self.detail}"

    def message_for(self, hash: Any) -> str:
        """
        Describe this problem for a specific hash.

        Args:
            hash: A hash string or anything with a ``hash`` attribute.

        Returns:
            The problem message followed by the hash in parentheses.
        """
        value = getattr(hash, "hash", hash)
        return f"{self.message}: ({value})"

    def render(self) -> str:
        """Line used in IntegrityError messages."""
        return f"Problem - {self.message}"

    @classmethod
    def hash_mismatch(
        cls, expected: str, actual: str, subject: Optional[str] = None
    ) -> "IntegrityProblem":
        """Problem for content whose hash differs from the expected one."""
        detail = f"Expected hash {expected} but got {actual}"
        if subject:
            detail = f"{detail} for {subject}"
        return cls(
            kind="HashMismatch",
            detail=detail,
            expected_hash=expected,
            actual_hash=actual,
        )

    @classmethod
    def from_thrown(cls, fault: BaseException) -> "IntegrityProblem":
        """
        Convert an arbitrary exception into a problem.

        An IntegrityError keeps its own structured problem when it carries
        exactly one, and is summarised when it carries several. Any other
        exception uses its message, or its qualified type name when the
        message is blank.

        Args:
            fault: Exception to convert.

        Returns:
            IntegrityProblem describing the fault.
        """
        if isinstance(fault, IntegrityError):
            problems = fault.problems
            if len(problems) == 1:
                return problems[0]
            if problems:
                summary = fault.message or "Integrity check failed"
                return cls(
                    kind=type(fault).__name__,
                    detail=f"{summary} ({len(problems)} problems)",
                )
            message = fault.message or ""
        else:
            message = str(fault)

        if not message.strip():
            fault_type = type(fault)
            message = f"{fault_type.__module__}.{fault_type.__qualname__}"
        return cls(kind=type(fault).__name__, detail=message)


ProblemLike = Union[IntegrityProblem, BaseException, None]


def render_problems(
    message: Optional[str], problems: Tuple[IntegrityProblem, ...]
) -> str:
    """
    Render a base message and its problems.

    Only the first MAX_RENDERED_PROBLEMS problems are listed; the rest are
    counted in a trailing summary line.
    """
    lines = [message] if message else []
    lines.extend(problem.render() for problem in problems[:MAX_RENDERED_PROBLEMS])

    remaining = len(problems) - MAX_RENDERED_PROBLEMS
    if remaining > 0:
        lines.append(f"...and {remaining} additional problems.")
    return "\n".join(lines)


class IntegrityError(MassHashError):
    """
    Raised when data integrity is violated.

    Aggregates zero or more IntegrityProblems and/or a causing exception.
    None entries are dropped. Exceptions given as problems are converted with
    IntegrityProblem.from_thrown(); nested IntegrityErrors contribute their
    own problems. When no cause is given, the first exception among the
    problems becomes the cause.

    Example
    -------
        try:
            identity.verify()
        except IntegrityError as e:
            for problem in e.problems:
                print(problem.message)
    """

    error_code = "MH-INT-001"
    why_it_happened = "Content did not match its expected hash"
    how_to_fix = [
        "Re-download or restore the affected files",
        "Check the storage medium for corruption",
        "Regenerate the expected hashes if the change was intentional",
    ]

    def __init__(
        self,
        message: Optional[str] = None,
        *problems: ProblemLike,
        cause: Optional[BaseException] = None,
    ) -> None:
        collected = []
        first_fault: Optional[BaseException] = None

        for problem in problems:
            if problem is None:
                continue
            if isinstance(problem, IntegrityProblem):
                collected.append(problem)
            elif isinstance(problem, BaseException):
                if first_fault is None:
                    first_fault = problem
                if isinstance(problem, IntegrityError) and problem.problems:
                    collected.extend(problem.problems)
                else:
                    collected.append(IntegrityProblem.from_thrown(problem))
            else:
                raise TypeError(
                    f"Expected IntegrityProblem or exception, got "
                    f"{type(problem).__name__}"
                )

        if cause is None:
            cause = first_fault
        elif not collected:
            collected.append(IntegrityProblem.from_thrown(cause))

        self._message = message
        self._problems: Tuple[IntegrityProblem, ...] = tuple(collected)
        super().__init__(render_problems(message, self._problems))
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self) -> Optional[str]:
        """Base message, without the rendered problems."""
        return self._message

    @property
    def problems(self) -> Tuple[IntegrityProblem, ...]:
        """All non-null problems, in the order given."""
        return self._problems

    @property
    def cause(self) -> Optional[BaseException]:
        """Underlying exception, if any."""
        return self.__cause__

    def __reduce__(self) -> Any:
        return (type(self), (self._message, *self._problems))

    @classmethod
    def hash_mismatch(
        cls,
        expected: str,
        actual: str,
        message: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> "IntegrityError":
        """Error for a single expected/actual hash mismatch."""
        return cls(message, IntegrityProblem.hash_mismatch(expected, actual, subject))
