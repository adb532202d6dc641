"""
Tests for IntegrityProblem and IntegrityError.

Organization
------------
- TestIntegrityProblem: messages and factories
- TestFromThrown: exception conversion
- TestIntegrityError: aggregation, causes and rendering
"""

import pickle

import pytest

from masshash.core.exceptions import DataUnavailableError, MassHashError
from masshash.core.integrity import (
    MAX_RENDERED_PROBLEMS,
    IntegrityError,
    IntegrityProblem,
    render_problems,
)
from masshash.core.identity import HashOnly


class TestIntegrityProblem:
    """Tests for IntegrityProblem."""

    def test_message(self):
        """Test the short message format."""
        problem = IntegrityProblem(kind="HashMismatch", detail="bad bytes")

        assert problem.message == "HashMismatch: bad bytes"
        assert problem.render() == "Problem - HashMismatch: bad bytes"

    def test_message_for_hash_string(self):
        """Test describing a problem for a hash string."""
        problem = IntegrityProblem(kind="Corrupt", detail="bad")

        assert problem.message_for("abc") == "Corrupt: bad: (abc)"

    def test_message_for_identity(self):
        """Test describing a problem for an identity."""
        problem = IntegrityProblem(kind="Corrupt", detail="bad")

        assert problem.message_for(HashOnly("abc")) == "Corrupt: bad: (abc)"

    def test_hash_mismatch(self):
        """Test the hash mismatch factory."""
        problem = IntegrityProblem.hash_mismatch("aaa", "bbb")

        assert problem.kind == "HashMismatch"
        assert problem.detail == "Expected hash aaa but got bbb"
        assert problem.expected_hash == "aaa"
        assert problem.actual_hash == "bbb"

    def test_hash_mismatch_with_subject(self):
        """Test that the subject is named in the detail."""
        problem = IntegrityProblem.hash_mismatch("aaa", "bbb", "mods/a.pak")

        assert problem.detail.endswith("for mods/a.pak")

    def test_frozen(self):
        """Test that problems are immutable."""
        problem = IntegrityProblem(kind="A", detail="b")

        with pytest.raises(AttributeError):
            problem.kind = "C"


class TestFromThrown:
    """Tests for IntegrityProblem.from_thrown."""

    def test_plain_exception(self):
        """Test that type name and message are used."""
        problem = IntegrityProblem.from_thrown(ValueError("broken"))

        assert problem.kind == "ValueError"
        assert problem.detail == "broken"

    def test_blank_message_uses_qualified_name(self):
        """Test that a blank message falls back to the qualified type name."""
        problem = IntegrityProblem.from_thrown(RuntimeError("  "))

        assert problem.detail == "builtins.RuntimeError"

    def test_single_problem_error_unwrapped(self):
        """Test that an IntegrityError with one problem yields that problem."""
        inner = IntegrityProblem.hash_mismatch("aaa", "bbb")

        assert IntegrityProblem.from_thrown(IntegrityError(None, inner)) is inner

    def test_multi_problem_error_summarised(self):
        """Test that several problems are summarised."""
        error = IntegrityError(
            "Bundle corrupt",
            IntegrityProblem(kind="A", detail="1"),
            IntegrityProblem(kind="B", detail="2"),
        )

        problem = IntegrityProblem.from_thrown(error)

        assert problem.kind == "IntegrityError"
        assert problem.detail == "Bundle corrupt (2 problems)"


class TestIntegrityError:
    """Tests for IntegrityError aggregation."""

    def test_is_masshash_error(self):
        """Test the exception hierarchy."""
        assert issubclass(IntegrityError, MassHashError)
        assert IntegrityError.error_code == "MH-INT-001"

    def test_none_problems_dropped(self):
        """Test that None entries are filtered out."""
        problem = IntegrityProblem(kind="A", detail="b")

        error = IntegrityError("msg", None, problem, None)

        assert error.problems == (problem,)

    def test_no_problems(self):
        """Test an error with only a message."""
        error = IntegrityError("Just a message")

        assert error.problems == ()
        assert error.message == "Just a message"
        assert str(error) == "Just a message"
        assert error.cause is None

    def test_problems_rendered_in_message(self):
        """Test that problems follow the base message."""
        error = IntegrityError(
            "Bundle corrupt",
            IntegrityProblem(kind="A", detail="first"),
            IntegrityProblem(kind="B", detail="second"),
        )

        assert str(error) == (
            "Bundle corrupt\nProblem - A: first\nProblem - B: second"
        )

    def test_rendering_truncated(self):
        """Test that only the first problems are listed, then a summary."""
        problems = [IntegrityProblem(kind="P", detail=str(i)) for i in range(35)]

        error = IntegrityError("Many", *problems)
        lines = str(error).splitlines()

        assert len(error.problems) == 35
        assert lines[0] == "Many"
        assert len(lines) == 1 + MAX_RENDERED_PROBLEMS + 1
        assert lines[MAX_RENDERED_PROBLEMS] == "Problem - P: 29"
        assert lines[-1] == "...and 5 additional problems."

    def test_exactly_max_problems_has_no_summary(self):
        """Test that no summary line appears at the limit."""
        problems = tuple(
            IntegrityProblem(kind="P", detail=str(i))
            for i in range(MAX_RENDERED_PROBLEMS)
        )

        rendered = render_problems(None, problems)

        assert "additional" not in rendered
        assert len(rendered.splitlines()) == MAX_RENDERED_PROBLEMS

    def test_exception_problem_becomes_cause(self):
        """Test that the first exception among problems becomes the cause."""
        first = ValueError("first")
        second = KeyError("second")

        error = IntegrityError("msg", first, second)

        assert error.cause is first
        assert error.__cause__ is first
        assert [p.kind for p in error.problems] == ["ValueError", "KeyError"]

    def test_explicit_cause_without_problems(self):
        """Test that a lone cause is also recorded as a problem."""
        cause = DataUnavailableError("gone")

        error = IntegrityError("msg", cause=cause)

        assert error.cause is cause
        assert len(error.problems) == 1
        assert error.problems[0].kind == "DataUnavailableError"

    def test_explicit_cause_with_problems(self):
        """Test that an explicit cause is not duplicated as a problem."""
        problem = IntegrityProblem(kind="A", detail="b")
        cause = OSError("disk")

        error = IntegrityError("msg", problem, cause=cause)

        assert error.problems == (problem,)
        assert error.cause is cause

    def test_nested_errors_flattened(self):
        """Test that nested IntegrityErrors contribute their problems."""
        inner = IntegrityError(
            "inner",
            IntegrityProblem(kind="A", detail="1"),
            IntegrityProblem(kind="B", detail="2"),
        )

        outer = IntegrityError("outer", inner, IntegrityProblem(kind="C", detail="3"))

        assert [p.kind for p in outer.problems] == ["A", "B", "C"]
        assert outer.cause is inner

    def test_invalid_problem_type(self):
        """Test that arbitrary objects are rejected."""
        with pytest.raises(TypeError):
            IntegrityError("msg", "not a problem")

    def test_hash_mismatch_factory(self):
        """Test the single-mismatch convenience constructor."""
        error = IntegrityError.hash_mismatch("aaa", "bbb", subject="x.bin")

        assert str(error) == "Problem - HashMismatch: Expected hash aaa but got bbb for x.bin"

    def test_pickle_keeps_problems(self):
        """Test that problems survive pickling."""
        error = IntegrityError("msg", IntegrityProblem(kind="A", detail="b"))

        restored = pickle.loads(pickle.dumps(error))

        assert restored.message == "msg"
        assert restored.problems == error.problems
        assert str(restored) == str(error)
