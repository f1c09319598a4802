"""aggregate readiness check run before the package is generated.

checks run in a fixed order and each yields passed / warning / failed.
warnings never block; a single failure does. pure function of the case.
"""
from assembler.models.checks import CheckStatus, PreflightCheck, PreflightReport
from assembler.models.filing import FilingCase

PREFLIGHT_CHECKS: tuple[tuple[str, str], ...] = (
    ("esv", "Event Sequence Validation"),
    ("crc", "CRC 2.111 Compliance"),
    ("exhibits", "Exhibit Processing"),
    ("pdf", "PDF/A Conversion"),
    ("bookmarks", "PDF Bookmarking"),
    ("metadata", "Document Metadata"),
    ("size", "File Size Validation"),
)


def _check_esv(case: FilingCase) -> tuple[CheckStatus, str]:
    # sequence violations are resolved at the ESV step, before preflight
    if not case.events:
        return CheckStatus.WARNING, "No events provided - proceeding without ESV"
    return CheckStatus.PASSED, ""


def _check_exhibits(case: FilingCase) -> tuple[CheckStatus, str]:
    if not case.exhibits:
        return CheckStatus.WARNING, "No exhibits attached - proceeding without exhibits"
    return CheckStatus.PASSED, ""


def _passed(case: FilingCase) -> tuple[CheckStatus, str]:
    # packaging checks; enforced upstream or by the external formatter
    return CheckStatus.PASSED, ""


_RULES = {
    "esv": _check_esv,
    "exhibits": _check_exhibits,
}


def run_preflight(case: FilingCase) -> PreflightReport:
    checks = []
    for check_id, label in PREFLIGHT_CHECKS:
        status, message = _RULES.get(check_id, _passed)(case)
        checks.append(PreflightCheck(id=check_id, label=label, status=status, message=message))

    return PreflightReport(
        checks=checks,
        can_proceed=not any(c.status == CheckStatus.FAILED for c in checks),
        has_warnings=any(c.status == CheckStatus.WARNING for c in checks),
    )
