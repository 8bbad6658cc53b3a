from hallmark import db
from datetime import datetime

TRAIT_CATEGORIES = ('AFFECTIVE', 'PSYCHOMOTOR', 'BEHAVIOURAL', 'COGNITIVE')


class GradingPolicy(db.Model):
    __tablename__ = 'grading_policy'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    pass_mark = db.Column(db.Integer, default=40)
    max_score = db.Column(db.Integer, default=100)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    assessments = db.relationship('Assessment', backref='policy', lazy=True, cascade='all, delete-orphan')
    traits = db.relationship('Trait', backref='policy', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'pass_mark': self.pass_mark,
            'max_score': self.max_score,
            'school_id': self.school_id,
            'assessments': [a.to_dict() for a in self.assessments],
            'traits': [t.to_dict() for t in self.traits],
        }


class Assessment(db.Model):
    __table_args__ = (db.UniqueConstraint('grading_policy_id', 'name', name='uq_assessment_policy_name'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    weight = db.Column(db.Float, nullable=False)
    max_score = db.Column(db.Integer, nullable=False)
    grading_policy_id = db.Column(db.Integer, db.ForeignKey('grading_policy.id'), nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'weight': self.weight, 'max_score': self.max_score}


class Trait(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(20), nullable=False)
    grading_policy_id = db.Column(db.Integer, db.ForeignKey('grading_policy.id'), nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'category': self.category}


class Grading(db.Model):
    """Graded-assessment container for one school, session and term."""
    __table_args__ = (db.UniqueConstraint('school_id', 'session', 'term', name='uq_grading_school_term'),)

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    session = db.Column(db.String(20), nullable=False)
    term = db.Column(db.String(10), nullable=False)
    published = db.Column(db.Boolean, default=False, nullable=False)
    section = db.Column(db.String(50))
    grading_policy_id = db.Column(db.Integer, db.ForeignKey('grading_policy.id'), nullable=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school = db.relationship('School')
    policy = db.relationship('GradingPolicy')

    def to_dict(self, counts=False):
        data = {
            'id': self.id,
            'title': self.title,
            'session': self.session,
            'term': self.term,
            'published': self.published,
            'section': self.section,
            'grading_policy_id': self.grading_policy_id,
            'school_id': self.school_id,
            'school': {'id': self.school.id, 'name': self.school.name} if self.school else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if counts:
            data['_count'] = {
                'studentGrades': StudentGrade.query.filter_by(grading_id=self.id).count(),
                'studentAssessments': StudentAssessment.query.filter_by(grading_id=self.id).count(),
                'studentTraits': StudentTrait.query.filter_by(grading_id=self.id).count(),
                'reportCards': ReportCard.query.filter_by(grading_id=self.id).count(),
            }
        return data


class StudentGrade(db.Model):
    __tablename__ = 'student_grade'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'grading_id', 'subject_id', 'class_id', name='uq_student_grade'),
    )

    id = db.Column(db.Integer, primary_key=True)
    score = db.Column(db.Float, default=0)
    grade = db.Column(db.String(5))
    remark = db.Column(db.String(120))
    subject_position = db.Column(db.Integer)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    grading_id = db.Column(db.Integer, db.ForeignKey('grading.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)

    subject = db.relationship('Subject')

    def to_dict(self):
        return {
            'id': self.id,
            'score': self.score,
            'grade': self.grade,
            'remark': self.remark,
            'subject_position': self.subject_position,
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'subject': self.subject.name if self.subject else None,
            'class_id': self.class_id,
        }


class StudentAssessment(db.Model):
    __tablename__ = 'student_assessment'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'assessment_id', 'subject_id', 'class_id', 'grading_id',
                            name='uq_student_assessment'),
    )

    id = db.Column(db.Integer, primary_key=True)
    score = db.Column(db.Float, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    assessment_id = db.Column(db.Integer, db.ForeignKey('assessment.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    grading_id = db.Column(db.Integer, db.ForeignKey('grading.id'), nullable=False)

    assessment = db.relationship('Assessment')


class StudentTrait(db.Model):
    __tablename__ = 'student_trait'

    id = db.Column(db.Integer, primary_key=True)
    score = db.Column(db.Integer)
    remark = db.Column(db.String(120))
    trait_id = db.Column(db.Integer, db.ForeignKey('trait.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    grading_id = db.Column(db.Integer, db.ForeignKey('grading.id'), nullable=False)

    trait = db.relationship('Trait')


class ReportCard(db.Model):
    __tablename__ = 'report_card'

    id = db.Column(db.Integer, primary_key=True)
    total_score = db.Column(db.Float)
    average_score = db.Column(db.Float)
    class_position = db.Column(db.Integer)
    remark = db.Column(db.String(255))
    formmaster_remark = db.Column(db.String(255))
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    grading_id = db.Column(db.Integer, db.ForeignKey('grading.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
