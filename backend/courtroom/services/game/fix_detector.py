"""Heuristic checks deciding whether edited code resolves a challenge.

Each penalty key maps to one predicate over the raw source text. The checks
are shallow pattern matches over the example code the player edits.
"""

import logging
import re
from typing import Callable, Dict

logger = logging.getLogger(__name__)


_IMG_TAG = re.compile(r'<img\b[^>]*>', re.IGNORECASE)
_ALT_ATTR = re.compile(r'''\balt\s*=\s*(['"`])([^'"`]*)\1''', re.IGNORECASE)


def _disability_act(source: str) -> bool:
    tags = _IMG_TAG.findall(source)
    if not tags:
        return False
    with_alt = 0
    for tag in tags:
        match = _ALT_ATTR.search(tag)
        content = match.group(2).strip() if match else ''
        logger.debug("[fix-check] DisabilityAct tag=%r alt=%r", tag, content)
        if content:
            with_alt += 1
    return with_alt == len(tags)


_EMAIL_AT_INCLUDES = re.compile(r'''email[^}]*\.includes\s*\(\s*['"]@['"]\s*\)''', re.IGNORECASE)
_EMAIL_DOT_INCLUDES = re.compile(r'''email[^}]*\.includes\s*\(\s*['"]\.['"]\s*\)''', re.IGNORECASE)
_EMAIL_AT_INDEXOF = re.compile(r'''email[^}]*\.indexOf\s*\(\s*['"]@['"]\s*\)''', re.IGNORECASE)
_EMAIL_DOT_INDEXOF = re.compile(r'''email[^}]*\.indexOf\s*\(\s*['"]\.['"]\s*\)''', re.IGNORECASE)
_PATTERN_CALL = re.compile(r'(/[^/]*@[^/]*\.[^/]*/|new\s+RegExp|\.test\s*\(|\.match\s*\()', re.IGNORECASE)
_AT_THEN_DOT = re.compile(r'@.*\.')
_VALIDATE_EMAIL_FN = re.compile(r'(function|const)\s+\w*validate\w*email\w*', re.IGNORECASE)
_EMAIL_LITERAL_COMPARE = re.compile(r'''email\s*[!=]==?\s*['"][^'"]*@[^'"]*\.[^'"]*['"]''', re.IGNORECASE)
_HTML5_EMAIL = re.compile(r'''type\s*=\s*['"]email['"]''', re.IGNORECASE)
_HTML5_PATTERN = re.compile(r'''pattern\s*=\s*['"][^'"]*@[^'"]*\.[^'"]*['"]''', re.IGNORECASE)
_LINE_COMMENT = re.compile(r'//.*$', re.MULTILINE)
_BLOCK_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
_EMAIL_CONDITIONAL = re.compile(r'if\s*\([^)]*email[^)]*[@.][^)]*\)', re.IGNORECASE)
_NEGATED_EMAIL_INCLUDES = re.compile(r'if\s*\([^)]*!email[^)]*includes[^)]*[@.]', re.IGNORECASE)


def _line_validates_email(line: str) -> bool:
    if _EMAIL_AT_INCLUDES.search(line) and _EMAIL_DOT_INCLUDES.search(line):
        return True
    if _EMAIL_AT_INDEXOF.search(line) and _EMAIL_DOT_INDEXOF.search(line):
        return True
    if _PATTERN_CALL.search(line) and _AT_THEN_DOT.search(line):
        return True
    if _VALIDATE_EMAIL_FN.search(line) or _EMAIL_LITERAL_COMPARE.search(line):
        return True
    return bool(_HTML5_EMAIL.search(line) or _HTML5_PATTERN.search(line))


def _laws_of_tort_validation(source: str) -> bool:
    for line in source.split('\n'):
        if _line_validates_email(line):
            logger.debug("[fix-check] LawsOfTort_Validation line match %r", line.strip())
            return True
    stripped = _BLOCK_COMMENT.sub('', _LINE_COMMENT.sub('', source))
    return bool(_EMAIL_CONDITIONAL.search(stripped) or _NEGATED_EMAIL_INCLUDES.search(stripped))


_LOGIN_FN = re.compile(r'function\s+login\s*\(', re.IGNORECASE)
_LOGIN_ONCLICK = re.compile(r'''onclick\s*=\s*["']login\(\)["']''', re.IGNORECASE)


def _bankruptcy(source: str) -> bool:
    has_button = 'id="loginBtn"' in source
    enabled = 'disabled' not in source or 'onclick="login()"' in source
    has_handler = bool(_LOGIN_FN.search(source) or _LOGIN_ONCLICK.search(source))
    logger.debug("[fix-check] Bankruptcy button=%s enabled=%s handler=%s", has_button, enabled, has_handler)
    return has_button and enabled and has_handler


_SECURITY_KEYWORD = re.compile(r'secure|encrypt|hash|auth|token|ssl|https|bcrypt', re.IGNORECASE)
_SECURE_PHRASE = re.compile(r'secure\s+(connection|database|storage)', re.IGNORECASE)


def _laws_of_tort_database(source: str) -> bool:
    if 'secure database' not in source or 'insecure database' in source:
        return False
    return bool(_SECURITY_KEYWORD.search(source) or _SECURE_PHRASE.search(source))


_PASSWORD_FIELD = re.compile(r'password\s*:', re.IGNORECASE)
_USERNAME_FIELD = re.compile(r'username\s*:', re.IGNORECASE)


def _privacy_breach(source: str) -> bool:
    return bool(_USERNAME_FIELD.search(source)) and not _PASSWORD_FIELD.search(source)


_COMMENTED_AUTH = re.compile(r'//\s*if\s*\(\s*!isAuthenticated', re.IGNORECASE)
_AUTH_CHECK = re.compile(r'if\s*\(\s*!isAuthenticated', re.IGNORECASE)


def _security_negligence(source: str) -> bool:
    if _COMMENTED_AUTH.search(source):
        return False
    return bool(_AUTH_CHECK.search(source))


DETECTORS: Dict[str, Callable[[str], bool]] = {
    'DisabilityAct': _disability_act,
    'LawsOfTort_Validation': _laws_of_tort_validation,
    'Bankruptcy': _bankruptcy,
    'LawsOfTort_Database': _laws_of_tort_database,
    'PrivacyBreach': _privacy_breach,
    'SecurityNegligence': _security_negligence,
}


def is_fixed(penalty_key: str, source: str) -> bool:
    """Return True when ``source`` satisfies the fix criteria for ``penalty_key``.

    Unknown keys and empty sources are never fixed.
    """
    detector = DETECTORS.get(penalty_key)
    if detector is None or not source:
        return False
    result = detector(source)
    logger.debug("[fix-check] key=%s length=%d fixed=%s", penalty_key, len(source), result)
    return result
