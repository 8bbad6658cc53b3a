from hallmark import db
from datetime import datetime

assignment_students = db.Table(
    'assignment_students',
    db.Column('assignment_id', db.Integer, db.ForeignKey('assignment.id'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('student.id'), primary_key=True),
)


class Assignment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    text = db.Column(db.Text)
    file = db.Column(db.String(256))
    graded = db.Column(db.Boolean, default=False)
    due_date = db.Column(db.DateTime, nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    students = db.relationship('Student', secondary=assignment_students, lazy='subquery',
                               backref=db.backref('assignments', lazy=True))
    submissions = db.relationship('Submission', backref='assignment', lazy=True, cascade='all, delete-orphan')


class Submission(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    answer = db.Column(db.Text)
    feedback = db.Column(db.Text)
    score = db.Column(db.Float)
    file = db.Column(db.String(256))
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ClassTest(db.Model):
    """A scheduled test for a class and subject."""
    __tablename__ = 'test'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(10), default='Pending')  # Completed / Cancelled / Pending
    instructions = db.Column(db.Text)
    duration = db.Column(db.Integer)
    maxscore = db.Column(db.Integer)
    open = db.Column(db.Boolean, default=False)
    term = db.Column(db.String(10))
    test_date = db.Column(db.Date)
    test_time = db.Column(db.String(10))
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    answers = db.relationship('Answer', backref='test', lazy=True, cascade='all, delete-orphan')


class Answer(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    score = db.Column(db.Float)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    test_id = db.Column(db.Integer, db.ForeignKey('test.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
