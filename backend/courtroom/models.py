from courtroom import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def _loads(raw, default):
    try:
        return json.loads(raw) if raw else default
    except (TypeError, ValueError):
        return default


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(64), nullable=True)
    password_hash = db.Column(db.String(256), nullable=True)
    sessions = db.relationship('Session', back_populates='user')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
        }


class Task(db.Model):
    __tablename__ = 'task'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    code = db.Column(db.Text, nullable=False)
    solution = db.Column(db.Text, nullable=False)
    violation = db.Column(db.String(64), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False)  # easy, medium, hard

    def to_dict(self, include_solution=False):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'code': self.code,
            'violation': self.violation,
            'difficulty': self.difficulty,
        }
        if include_solution:
            data['solution'] = self.solution
        return data


class Session(db.Model):
    __tablename__ = 'session'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    phase = db.Column(db.String(32), default='PLAYING')  # PLAYING, ENDED
    difficulty = db.Column(db.String(16), nullable=True)
    duration = db.Column(db.Integer, nullable=True)
    score = db.Column(db.Integer, default=0)
    penalties = db.Column(db.Integer, default=0)
    completed = db.Column(db.Integer, default=0)
    ignored = db.Column(db.Integer, default=0)
    start_time = db.Column(db.DateTime(timezone=True), default=_utcnow)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    user = db.relationship('User', back_populates='sessions')
    session_tasks = db.relationship('SessionTask', back_populates='session', cascade='all, delete-orphan')
    messages = db.relationship('Message', back_populates='session', cascade='all, delete-orphan')
    verdicts = db.relationship('Verdict', back_populates='session', cascade='all, delete-orphan')

    def to_dict(self, include_related=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'phase': self.phase,
            'difficulty': self.difficulty,
            'duration': self.duration,
            'score': self.score,
            'penalties': self.penalties,
            'completed': self.completed,
            'ignored': self.ignored,
            'start_time': _iso(self.start_time),
            'end_time': _iso(self.end_time),
        }
        if include_related:
            data['user'] = self.user.to_dict() if self.user else None
            data['session_tasks'] = [st.to_dict() for st in self.session_tasks]
            data['messages'] = [m.to_dict() for m in self.messages]
            data['verdicts'] = [v.to_dict() for v in self.verdicts]
        return data


class SessionTask(db.Model):
    __tablename__ = 'session_task'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('session.id'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=False)
    output = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), default='pending')  # pending, completed, failed
    penalty = db.Column(db.Integer, default=0)
    session = db.relationship('Session', back_populates='session_tasks')
    task = db.relationship('Task')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'task_id': self.task_id,
            'output': self.output,
            'status': self.status,
            'penalty': self.penalty,
            'task': self.task.to_dict() if self.task else None,
        }


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('session.id'), nullable=True)
    sender = db.Column(db.String(32), nullable=False)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    session = db.relationship('Session', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'sender': self.sender,
            'content': self.content,
            'timestamp': _iso(self.timestamp),
        }


class Verdict(db.Model):
    __tablename__ = 'verdict'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('session.id'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=True)
    violation = db.Column(db.String(64), nullable=False)
    penalty = db.Column(db.Integer, default=0)
    reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    session = db.relationship('Session', back_populates='verdicts')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'task_id': self.task_id,
            'violation': self.violation,
            'penalty': self.penalty,
            'reason': self.reason,
            'created_at': _iso(self.created_at),
        }


class GameResult(db.Model):
    __tablename__ = 'game_result'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('session.id'), nullable=True)
    difficulty = db.Column(db.String(16), nullable=True)
    outcome = db.Column(db.String(16), nullable=True)
    game_state = db.Column(db.String(16), nullable=True)
    time_taken = db.Column(db.Integer, default=0)
    completed_tasks = db.Column(db.Text, nullable=True)  # JSON-encoded list of penalty keys
    total_tasks = db.Column(db.Integer, default=0)
    penalties = db.Column(db.Text, nullable=True)  # JSON-encoded list
    final_code = db.Column(db.Text, nullable=True)
    generated_code = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @classmethod
    def from_report(cls, report, session_id=None):
        return cls(
            session_id=session_id,
            difficulty=report.get('difficulty'),
            outcome=report.get('outcome'),
            game_state=report.get('game_state'),
            time_taken=int(report.get('time_taken') or 0),
            completed_tasks=json.dumps(list(report.get('completed_tasks') or [])),
            total_tasks=int(report.get('total_tasks') or 0),
            penalties=json.dumps(list(report.get('penalties') or [])),
            final_code=report.get('final_code'),
            generated_code=report.get('generated_code'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'difficulty': self.difficulty,
            'outcome': self.outcome,
            'game_state': self.game_state,
            'time_taken': self.time_taken,
            'completed_tasks': _loads(self.completed_tasks, []),
            'total_tasks': self.total_tasks,
            'penalties': _loads(self.penalties, []),
            'final_code': self.final_code,
            'generated_code': self.generated_code,
            'created_at': _iso(self.created_at),
        }
