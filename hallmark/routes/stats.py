"""
Dashboard statistics.

One endpoint, one payload per role. Counts are always taken inside the
caller's scope; the role is read from the session only.
"""
from datetime import date, datetime, timedelta

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from sqlalchemy import func

from hallmark.models.academics import Answer, Assignment, ClassTest, Submission
from hallmark.models.attendance import Attendance
from hallmark.models.grading import Grading
from hallmark.models.lesson import Lesson
from hallmark.models.notice import Announcement, Event
from hallmark.models.payment import Payment, PaymentSetup
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.models.student import Student
from hallmark.models.subject import Subject
from hallmark.models.teacher import Teacher
from hallmark.models.term import Term
from hallmark.models.user import User
from hallmark.models.user_activity import UserActivity
from hallmark.routes.notices import visible_notices
from hallmark.routes.parents import visible_parents
from hallmark.services.scope import ADMIN_ROLES, current_scope
from hallmark.utils.responses import error_response

bp = Blueprint('stats', __name__, url_prefix='/api/stats')

WEEKDAYS = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')


def _count(scope, model, column=None):
    return scope.filter(model.query, column if column is not None else model.school_id).count()


def _attendance_query(scope):
    query = scope.filter(Attendance.query, Attendance.school_id)
    if scope.role == 'student':
        return query.filter(Attendance.student_id == scope.student.id)
    if scope.role == 'parent':
        return query.filter(Attendance.student_id.in_([c.id for c in scope.children]))
    if scope.role == 'teacher':
        class_students = Student.query.with_entities(Student.id).filter(Student.class_id.in_(scope.class_ids()))
        return query.filter(Attendance.student_id.in_([row[0] for row in class_students]))
    return query


def attendance_chart(scope, days=7):
    """Present/absent counts for each of the last ``days`` days."""
    today = date.today()
    start = today - timedelta(days=days - 1)
    rows = _attendance_query(scope)\
        .with_entities(Attendance.date, Attendance.present, func.count(Attendance.id))\
        .filter(Attendance.date >= start, Attendance.date <= today)\
        .group_by(Attendance.date, Attendance.present).all()

    totals = {}
    for day, present, count in rows:
        bucket = totals.setdefault(day, {'present': 0, 'absent': 0})
        bucket['present' if present else 'absent'] += count

    chart = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        bucket = totals.get(day, {'present': 0, 'absent': 0})
        chart.append({'date': day.isoformat(), 'day': WEEKDAYS[day.weekday()], **bucket})
    return chart


def students_by_gender(scope):
    rows = scope.filter(Student.query, Student.school_id)\
        .with_entities(Student.gender, func.count(Student.id))\
        .group_by(Student.gender).all()
    return [{'gender': gender or 'UNKNOWN', 'count': count} for gender, count in rows]


def current_term(scope):
    term = scope.filter(Term.query, Term.school_id).filter(Term.status == 'Active')\
        .order_by(Term.created_at.desc(), Term.id.desc()).first()
    return term.to_dict() if term else None


def _admin_stats(scope):
    month_ago = datetime.utcnow() - timedelta(days=30)
    admins = scope.filter(User.query, User.school_id).filter(User.role.in_(ADMIN_ROLES))
    payments = scope.filter(Payment.query, Payment.school_id)

    return {
        'parents': visible_parents(scope).count(),
        'schools': scope.filter(School.query, School.id).count(),
        'admins': admins.filter(User.role == 'admin').count(),
        'superAdmins': User.query.filter_by(role='super').count() if scope.is_global else 0,
        'managementUsers': admins.filter(User.role == 'management').count(),
        'administrations': admins.count(),
        'announcements': _count(scope, Announcement),
        'events': _count(scope, Event),
        'lessons': _count(scope, Lesson),
        'assignments': _count(scope, Assignment),
        'tests': _count(scope, ClassTest),
        'recentStudents': scope.filter(Student.query, Student.school_id)
                               .filter(Student.created_at >= month_ago).count(),
        'recentTeachers': scope.filter(Teacher.query, Teacher.school_id)
                               .filter(Teacher.created_at >= month_ago).count(),
        'totalPayments': payments.count(),
        'recentPayments': [p.to_dict() for p in payments.order_by(Payment.created_at.desc()).limit(5)],
        'paymentSetups': _count(scope, PaymentSetup),
        'gradings': _count(scope, Grading),
        'submissions': Submission.query.join(Assignment)
                                 .filter(*_school_clause(scope, Assignment.school_id)).count(),
        'answers': Answer.query.join(ClassTest)
                         .filter(*_school_clause(scope, ClassTest.school_id)).count(),
    }


def _school_clause(scope, column):
    if scope.is_global:
        return ()
    return (column.in_(scope.school_ids),)


def _teacher_stats(scope):
    teacher = scope.teacher
    if teacher is None:
        return {}
    class_ids = scope.class_ids()
    tests = ClassTest.query.filter_by(teacher_id=teacher.id)
    return {
        'mySubjects': Subject.query.filter_by(teacher_id=teacher.id).count(),
        'myLessons': Lesson.query.filter_by(teacher_id=teacher.id).count(),
        'myStudents': Student.query.filter(Student.class_id.in_(class_ids)).count(),
        'myClasses': len(class_ids),
        'myAssignments': Assignment.query.filter_by(teacher_id=teacher.id).count(),
        'myTests': tests.count(),
        'pendingTests': tests.filter(ClassTest.status == 'Pending').count(),
        'completedTests': tests.filter(ClassTest.status == 'Completed').count(),
        'mySubmissions': Submission.query.join(Assignment).filter(Assignment.teacher_id == teacher.id).count(),
    }


def _student_stats(scope):
    student = scope.student
    if student is None:
        return {}
    month_ago = date.today() - timedelta(days=30)
    attendance = Attendance.query.filter(Attendance.student_id == student.id, Attendance.date >= month_ago)
    school_class = student.school_class
    parent = student.parent
    return {
        'myClass': school_class.to_dict() if school_class else None,
        'classmates': Student.query.filter(Student.class_id == student.class_id, Student.id != student.id).count(),
        'myAssignments': Assignment.query.filter_by(class_id=student.class_id).count(),
        'myTests': ClassTest.query.filter_by(class_id=student.class_id).count(),
        'myAttendance': attendance.filter(Attendance.present.is_(True)).count(),
        'totalAttendanceDays': attendance.count(),
        'mySubmissions': Submission.query.filter_by(student_id=student.id).count(),
        'myAnswers': Answer.query.filter_by(student_id=student.id).count(),
        'parentInfo': parent.to_dict(minimal=True) if parent else None,
        'schoolInfo': student.school.to_dict() if student.school else None,
    }


def _parent_stats(scope):
    children = scope.children
    child_ids = [c.id for c in children]
    week_ago = date.today() - timedelta(days=6)
    payments = Payment.query.filter(Payment.student_id.in_(child_ids))
    attendance = Attendance.query.filter(Attendance.student_id.in_(child_ids), Attendance.date >= week_ago)
    fees_paid = payments.with_entities(func.coalesce(func.sum(Payment.amount), 0)).scalar()

    return {
        'children': len(children),
        'childrenDetails': [c.to_dict() for c in children],
        'totalPayments': payments.count(),
        'totalFeesPaid': float(fees_paid or 0),
        'recentPayments': [p.to_dict() for p in payments.order_by(Payment.created_at.desc()).limit(5)],
        'childrenAttendance': attendance.filter(Attendance.present.is_(True)).count(),
        'totalAttendanceDays': attendance.count(),
    }


ROLE_STATS = {
    'super': _admin_stats,
    'admin': _admin_stats,
    'management': _admin_stats,
    'teacher': _teacher_stats,
    'student': _student_stats,
    'parent': _parent_stats,
}


@bp.route('', methods=['GET'])
@login_required
def dashboard_stats():
    scope = current_scope()
    if scope.is_empty:
        return error_response(403, 'Forbidden', 'No school is associated with this account')

    stats = {
        'students': _count(scope, Student),
        'teachers': _count(scope, Teacher),
        'classes': _count(scope, SchoolClass),
        'subjects': _count(scope, Subject),
    }
    stats.update(ROLE_STATS.get(scope.role, lambda _: {})(scope))

    announcements = visible_notices(Announcement, scope)\
        .order_by(Announcement.date.desc(), Announcement.id.desc()).limit(3).all()
    events = visible_notices(Event, scope).order_by(Event.start_time.desc(), Event.id.desc()).limit(5).all()
    activity = UserActivity.query.filter_by(user_id=current_user.id)\
        .order_by(UserActivity.created_at.desc()).limit(5).all()

    return jsonify({
        'success': True,
        'role': scope.role,
        'data': stats,
        'charts': {
            'attendance': attendance_chart(scope),
            'studentsByGender': students_by_gender(scope),
        },
        'currentTerm': current_term(scope),
        'recentAnnouncements': [a.to_dict() for a in announcements],
        'recentEvents': [e.to_dict() for e in events],
        'recentActivity': [{
            'activity_type': a.activity_type,
            'description': a.description,
            'created_at': a.created_at.isoformat(),
        } for a in activity],
        'timestamp': datetime.utcnow().isoformat(),
    })
