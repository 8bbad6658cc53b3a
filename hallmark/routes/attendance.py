from datetime import date

from flask import Blueprint, abort, jsonify, request
from flask_login import login_required

from hallmark import db
from hallmark.models.attendance import Attendance
from hallmark.models.student import Student
from hallmark.routes.main import audit
from hallmark.schemas import AttendanceMark
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, json_body, empty_list_response, int_arg, paginate

bp = Blueprint('attendance', __name__, url_prefix='/api/attendance')


def _date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        abort(400, description=f'{name} must be a date (YYYY-MM-DD)')


def visible_attendance(scope):
    query = scope.filter(Attendance.query, Attendance.school_id)
    if scope.role == 'student':
        return query.filter(Attendance.student_id == (scope.student.id if scope.student else None))
    if scope.role == 'parent':
        return query.filter(Attendance.student_id.in_([child.id for child in scope.children]))
    return query


@bp.route('', methods=['GET'])
@login_required
def list_attendance():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_attendance(scope)
    start, end = _date_arg('from'), _date_arg('to')
    if start:
        query = query.filter(Attendance.date >= start)
    if end:
        query = query.filter(Attendance.date <= end)
    student_id = int_arg('student_id')
    if student_id:
        query = query.filter(Attendance.student_id == student_id)
    class_id = int_arg('class_id')
    if class_id:
        query = query.join(Student, Student.id == Attendance.student_id).filter(Student.class_id == class_id)

    records, pagination = paginate(query.order_by(Attendance.date.desc(), Attendance.id.desc()),
                                   default_limit=50, max_limit=500)
    return list_response([r.to_dict() for r in records], pagination['total'], pagination=pagination)


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management', 'teacher')
def mark_attendance():
    scope = current_scope()
    payload = AttendanceMark.model_validate(json_body())
    scope.require(payload.school_id)

    student = db.session.get(Student, payload.student_id)
    if not student or student.school_id != payload.school_id:
        return error_response(400, 'Bad Request', 'Student not found in this school')

    record = Attendance.query.filter_by(student_id=student.id, school_id=payload.school_id,
                                        date=payload.date).first()
    if record is not None:
        record.present = payload.present
        status = 200
    else:
        record = Attendance(student_id=student.id, school_id=payload.school_id, date=payload.date,
                            present=payload.present)
        db.session.add(record)
        status = 201
    db.session.commit()

    audit('mark_attendance', f"Marked {student.admission_number} {'present' if record.present else 'absent'} "
                             f"on {record.date.isoformat()}")
    return jsonify({'data': record.to_dict()}), status
