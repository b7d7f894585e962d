"""Starting buggy source per tier and the "Show Solution" patches."""

import re

from .catalog import BEGINNER, INTERMEDIATE


EASY_CODE = '''
<div style="border:1px solid black; padding:10px;">
  <h3 style="color:blue;">User Profile (Easy)</h3>

  <img id="img1" src="/assets/banner.png">

  <label style="display:block; margin-top:10px;">Email:</label>
  <input type="text" id="email" value="bad-email" style="border:1px solid #ccc;">

  <button onclick="saveData()" style="background-color:gray; color:white; padding:5px 10px;">Save</button>
</div>

<script>
  function saveData() {
    const email = document.getElementById('email').value;
    console.log('Saving profile...');
    alert('Saved');
  }
</script>
'''.strip()

MEDIUM_CODE = '''
<div style="border:1px solid black; padding:10px;">
  <h3 style="color:blue;">User Profile (Medium)</h3>

  <img id="img1" src="/assets/banner.png">

  <label style="display:block; margin-top:10px;">Email:</label>
  <input type="text" id="email" value="bad-email" style="border:1px solid #ccc;">

  <button onclick="saveData()" style="background-color:gray; color:white; padding:5px 10px;">Save</button>

  <div style="margin-top:12px;">
    <label>Login:</label>
    <input id="login-username" placeholder="username"/>
    <input id="login-password" type="password" placeholder="password"/>
    <button id="loginBtn" disabled>Login</button>
  </div>
</div>

<script>
  function saveData() {
    const email = document.getElementById('email').value;
    console.log('Saving profile...');
    alert('Saved');
  }

  function login() {
    const u = document.getElementById('login-username').value;
    const p = document.getElementById('login-password').value;
    if (u && p) {
      alert('Logged in');
    }
  }
</script>
'''.strip()

DIFFICULT_CODE = '''
<div style="border:1px solid black; padding:10px;">
  <h3 style="color:blue;">User Profile (Difficult)</h3>

  <img id="img1" src="/assets/banner.png">

  <label style="display:block; margin-top:10px;">Email:</label>
  <input type="text" id="email" value="bad-email" style="border:1px solid #ccc;">

  <button onclick="saveData()" style="background-color:gray; color:white; padding:5px 10px;">Save</button>

  <div style="margin-top:12px;">
    <label>Login:</label>
    <input id="login-username" placeholder="username"/>
    <input id="login-password" type="password" placeholder="password"/>
    <button id="loginBtn" disabled>Login</button>
  </div>
</div>

<script>
  // Database connection
  const db = connect("insecure_database");

  function saveData() {
    const email = document.getElementById('email').value;
    console.log('Saving data to insecure database...');
    alert('Saved');
  }

  function login() {
    const u = document.getElementById('login-username').value;
    const p = document.getElementById('login-password').value;
    if (u && p) {
      alert('Logged in');
    }
  }

  // API endpoint
  function getUsers() {
    return [
      { username: "alex", password: "12345" },
      { username: "sam", password: "abcd" },
    ];
  }

  // Authentication check (commented out)
  // if (!isAuthenticated(user)) {
  //   throw new Error("Unauthorized access");
  // }
  console.log("Access granted");
</script>
'''.strip()


def template_for(tier: str) -> str:
    if tier == BEGINNER:
        return EASY_CODE
    if tier == INTERMEDIATE:
        return MEDIUM_CODE
    return DIFFICULT_CODE


_EMAIL_PATTERN_ATTR = 'type="email" pattern="[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\\.[a-zA-Z]{2,}"'
_EXPOSED_USER = re.compile(r'\{ username: "([^"]*)", password: "[^"]*" \}')
_COMMENTED_AUTH_BLOCK = (
    '// if (!isAuthenticated(user)) {\n'
    '  //   throw new Error("Unauthorized access");\n'
    '  // }'
)
_AUTH_BLOCK = (
    'if (!isAuthenticated(user)) {\n'
    '    throw new Error("Unauthorized access");\n'
    '  }'
)


def _email_input(match):
    tag = match.group(0)
    if 'type="text"' in tag and 'id="email"' in tag:
        return tag.replace('type="text"', _EMAIL_PATTERN_ATTR)
    return tag


def solution_for(penalty_key: str, tier: str) -> str:
    """Return the tier template with the fix for ``penalty_key`` applied.

    Unknown keys return the untouched template.
    """
    code = template_for(tier)
    if penalty_key == 'DisabilityAct':
        return re.sub(r'<img([^>]*?)>', r'<img\1 alt="Descriptive text for accessibility">', code, flags=re.IGNORECASE)
    if penalty_key == 'LawsOfTort_Validation':
        return re.sub(r'<input([^>]*?)>', _email_input, code, flags=re.IGNORECASE)
    if penalty_key == 'Bankruptcy':
        return code.replace(
            '<button id="loginBtn" disabled>Login</button>',
            '<button id="loginBtn" onclick="login()">Login</button>',
        )
    if penalty_key == 'LawsOfTort_Database':
        return code.replace('insecure database', 'secure database with encryption')
    if penalty_key == 'PrivacyBreach':
        return _EXPOSED_USER.sub(r'{ username: "\1" }', code)
    if penalty_key == 'SecurityNegligence':
        return code.replace(_COMMENTED_AUTH_BLOCK, _AUTH_BLOCK)
    return code
