"""Safety policy for risky global options.

The policy is a pure function of :class:`GlobalOptions`. Without strict
mode every risky option only produces an advisory warning; with strict
mode the same options are rejected by the parser before a command exists.
"""

from dataclasses import dataclass

from pacctl.core.errors import ParseError
from pacctl.models.command import GlobalOptions


@dataclass(frozen=True, slots=True)
class PolicyWarning:
    """Advisory warning about a risky option.

    Attributes:
        option: Command-line option that triggered the warning.
        message: Description of the specific risk.
    """

    option: str
    message: str


def strict_violations(options: GlobalOptions) -> list[str]:
    """List the options that strict mode forbids.

    Args:
        options: Candidate global options.

    Returns:
        Option names that are enabled but disallowed under --strict.
        Empty when strict mode is off.
    """
    if not options.strict:
        return []

    violations: list[str] = []
    if options.nodeps > 0:
        violations.append("--nodeps")
    if options.noscriptlet:
        violations.append("--noscriptlet")
    if options.overwrite:
        violations.append("--overwrite")
    return violations


def enforce_strict(options: GlobalOptions) -> None:
    """Reject option combinations disallowed by strict mode.

    Args:
        options: Candidate global options.

    Raises:
        ParseError: If strict mode is set together with dependency bypass,
            scriptlet suppression or overwrite patterns.
    """
    violations = strict_violations(options)
    if violations:
        msg = f"--strict cannot be combined with {', '.join(violations)}"
        raise ParseError(msg, token=violations[0])


def collect_warnings(options: GlobalOptions) -> list[PolicyWarning]:
    """Describe the risks of the enabled options.

    Warnings never block execution.

    Args:
        options: Validated global options.

    Returns:
        One warning per risky option, in a stable order.
    """
    warnings: list[PolicyWarning] = []

    if options.nodeps > 0:
        scope = "dependency checks"
        if options.nodeps > 1:
            scope = "dependency and dependency-version checks"
        warnings.append(
            PolicyWarning(
                option="--nodeps",
                message=f"{scope} are disabled; the result may leave packages "
                "with unsatisfied dependencies.",
            )
        )

    if options.noscriptlet:
        warnings.append(
            PolicyWarning(
                option="--noscriptlet",
                message="install scriptlets are disabled; packages may be left "
                "unconfigured (users, services, caches).",
            )
        )

    if options.overwrite:
        patterns = ", ".join(options.overwrite)
        warnings.append(
            PolicyWarning(
                option="--overwrite",
                message=f"files matching {patterns} may be overwritten; this can "
                "hide file ownership collisions between packages.",
            )
        )

    return warnings
