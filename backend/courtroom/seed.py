from courtroom import db
from courtroom.models import Task, User


DEFAULT_TASKS = [
    {
        'title': 'Fix alt attribute in img1',
        'description': 'Add proper alt text to the image element for accessibility compliance',
        'code': '<img src="profile.jpg" alt="" />',
        'solution': '<img src="profile.jpg" alt="User profile picture" />',
        'violation': 'Disability Act',
        'difficulty': 'easy',
    },
    {
        'title': 'Fix input validation',
        'description': 'Add proper validation to prevent malicious input',
        'code': (
            'function processInput(userInput) {\n'
            '  return userInput;\n'
            '}'
        ),
        'solution': (
            'function processInput(userInput) {\n'
            "  if (!userInput || typeof userInput !== 'string') {\n"
            "    throw new Error('Invalid input');\n"
            '  }\n'
            "  return userInput.replace(/<script\\b[^<]*(?:(?!<\\/script>)<[^<]*)*<\\/script>/gi, '');\n"
            '}'
        ),
        'violation': 'Tort',
        'difficulty': 'medium',
    },
    {
        'title': 'Fix user login security',
        'description': 'Implement secure authentication mechanism',
        'code': (
            'function login(username, password) {\n'
            "  if (username === 'admin' && password === 'password') {\n"
            '    return true;\n'
            '  }\n'
            '  return false;\n'
            '}'
        ),
        'solution': (
            'async function login(username, password) {\n'
            '  const user = await findUser(username);\n'
            '  if (!user) return false;\n'
            '\n'
            '  const isValid = await bcrypt.compare(password, user.hashedPassword);\n'
            '  if (!isValid) return false;\n'
            '\n'
            '  const token = jwt.sign({ userId: user.id }, process.env.JWT_SECRET);\n'
            '  return { token, user: { id: user.id, username: user.username } };\n'
            '}'
        ),
        'violation': 'Bankruptcy',
        'difficulty': 'hard',
    },
    {
        'title': 'Fix secure database connection',
        'description': 'Implement secure database connection with proper error handling',
        'code': (
            "const db = require('mysql');\n"
            'const connection = db.createConnection({\n'
            "  host: 'localhost',\n"
            "  user: 'root',\n"
            "  password: '',\n"
            "  database: 'myapp'\n"
            '});'
        ),
        'solution': (
            "const mysql = require('mysql2/promise');\n"
            'const connection = await mysql.createConnection({\n'
            '  host: process.env.DB_HOST,\n'
            '  user: process.env.DB_USER,\n'
            '  password: process.env.DB_PASSWORD,\n'
            '  database: process.env.DB_NAME,\n'
            '  ssl: { rejectUnauthorized: false }\n'
            '});'
        ),
        'violation': 'Tort',
        'difficulty': 'hard',
    },
]

DEFAULT_USER = {'email': 'developer@example.com', 'name': 'Software Developer'}


def seed_tasks():
    """Upsert the default tasks by title. Returns ``(created, updated)``."""
    created = updated = 0
    for data in DEFAULT_TASKS:
        task = Task.query.filter_by(title=data['title']).first()
        if task:
            for field, value in data.items():
                setattr(task, field, value)
            updated += 1
        else:
            task = Task(**data)
            created += 1
        db.session.add(task)
    db.session.commit()
    return created, updated


def seed_users():
    user = User.query.filter_by(email=DEFAULT_USER['email']).first()
    if not user:
        user = User(**DEFAULT_USER)
        user.set_password('password')
        db.session.add(user)
        db.session.commit()
    return user
