import pytest

from courtroom.services.game.catalog import ADVANCED, BEGINNER, INTERMEDIATE, PENALTY_KEYS
from courtroom.services.game.fix_detector import DETECTORS, is_fixed
from courtroom.services.game.templates import DIFFICULT_CODE, solution_for, template_for


@pytest.mark.parametrize('html,expected', [
    ('<img src="x">', False),
    ('<img src="x" alt="">', False),
    ('<img src="x" alt="   ">', False),
    ('<img src="x" alt="logo">', True),
    ("<img src='x' alt='logo'>", True),
    ('<img src="a" alt="one"><img src="b">', False),
    ('<img src="a" alt="one"><IMG src="b" ALT="two">', True),
    ('<p>no images here</p>', False),
])
def test_disability_act(html, expected):
    assert is_fixed('DisabilityAct', html) is expected


@pytest.mark.parametrize('code', [
    "if (email.includes('@') && email.includes('.')) { save(); }",
    "if (email.indexOf('@') > 0 && email.indexOf('.') > 0) { save(); }",
    "const ok = /^[^@]+@[^@]+\\.[a-z]+$/.test(email);",
    'function validateEmail(value) { return true; }',
    "if (email === 'user@example.com') { ok(); }",
    '<input type="email" id="email">',
    '<input id="email" pattern="[a-z]+@[a-z]+\\.[a-z]{2,}">',
])
def test_validation_accepts_common_checks(code):
    assert is_fixed('LawsOfTort_Validation', code)


def test_validation_conditional_spanning_lines():
    code = "if (\n  email\n  && email.length > 3 && ok('@')\n) {}"
    assert is_fixed('LawsOfTort_Validation', code)


def test_validation_ignores_commented_conditional():
    code = "// if (email.length && x == '@')\nconsole.log(email);"
    assert not is_fixed('LawsOfTort_Validation', code)


def test_bankruptcy():
    assert not is_fixed('Bankruptcy', template_for(INTERMEDIATE))
    assert is_fixed('Bankruptcy', solution_for('Bankruptcy', INTERMEDIATE))
    # enabled button but no handler anywhere
    assert not is_fixed('Bankruptcy', '<button id="loginBtn">Login</button>')
    assert is_fixed('Bankruptcy', '<button id="loginBtn">Login</button><script>function login() {}</script>')


def test_database():
    assert not is_fixed('LawsOfTort_Database', DIFFICULT_CODE)
    assert is_fixed('LawsOfTort_Database', solution_for('LawsOfTort_Database', ADVANCED))
    assert not is_fixed('LawsOfTort_Database', 'secure database and an insecure database')


def test_privacy_breach():
    assert not is_fixed('PrivacyBreach', DIFFICULT_CODE)
    assert is_fixed('PrivacyBreach', solution_for('PrivacyBreach', ADVANCED))
    assert not is_fixed('PrivacyBreach', 'return [];')


def test_security_negligence():
    assert not is_fixed('SecurityNegligence', DIFFICULT_CODE)
    assert is_fixed('SecurityNegligence', solution_for('SecurityNegligence', ADVANCED))
    assert not is_fixed('SecurityNegligence', 'console.log("Access granted");')


def test_every_solution_fixes_its_own_key():
    for key in PENALTY_KEYS:
        assert is_fixed(key, solution_for(key, ADVANCED)), key


def test_templates_start_unfixed():
    for tier in (BEGINNER, INTERMEDIATE, ADVANCED):
        assert not is_fixed('DisabilityAct', template_for(tier))
        assert not is_fixed('LawsOfTort_Validation', template_for(tier))


def test_unknown_key_and_empty_source():
    assert not is_fixed('NotAKey', '<img alt="x">')
    assert not is_fixed('DisabilityAct', '')
    assert not is_fixed('DisabilityAct', None)
    assert set(DETECTORS) == set(PENALTY_KEYS)
