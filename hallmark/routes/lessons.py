from flask import Blueprint, jsonify
from flask_login import login_required

from hallmark import db
from hallmark.models.lesson import Lesson, DAYS
from hallmark.models.school_class import SchoolClass
from hallmark.models.subject import Subject
from hallmark.models.teacher import Teacher
from hallmark.routes.main import audit
from hallmark.schemas import LessonCreate, LessonUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg

bp = Blueprint('lessons', __name__, url_prefix='/api/lessons')

DAY_ORDER = db.case({day: index for index, day in enumerate(DAYS)}, value=Lesson.day, else_=len(DAYS))


def visible_lessons(scope):
    query = scope.filter(Lesson.query, Lesson.school_id)
    if scope.role == 'teacher':
        return query.filter(Lesson.teacher_id == (scope.teacher.id if scope.teacher else None))
    if scope.role in ('student', 'parent'):
        return query.filter(Lesson.class_id.in_(scope.class_ids()))
    return query


def _check_links(school_id, class_id, subject_id, teacher_id):
    """Class, subject and teacher must all belong to the lesson's school."""
    for model, key, label in ((SchoolClass, class_id, 'Class'), (Subject, subject_id, 'Subject'),
                              (Teacher, teacher_id, 'Teacher')):
        record = db.session.get(model, key)
        if not record or record.school_id != school_id:
            return error_response(400, 'Bad Request', f'{label} not found in this school')
    return None


@bp.route('', methods=['GET'])
@login_required
def list_lessons():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_lessons(scope)
    for arg, column in (('class_id', Lesson.class_id), ('teacher_id', Lesson.teacher_id),
                        ('subject_id', Lesson.subject_id)):
        value = int_arg(arg)
        if value:
            query = query.filter(column == value)

    lessons = query.order_by(DAY_ORDER, Lesson.start_time.asc()).all()
    return list_response([lesson.to_dict() for lesson in lessons])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_lesson():
    payload = LessonCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)

    error = _check_links(school_id, payload.class_id, payload.subject_id, payload.teacher_id)
    if error:
        return error

    lesson = Lesson(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    db.session.add(lesson)
    db.session.commit()
    audit('create_lesson', f'Created lesson {lesson.name}')
    return jsonify({'data': lesson.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_lessons():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    lessons = current_scope().filter(Lesson.query, Lesson.school_id).filter(Lesson.id.in_(ids)).all()
    if not lessons:
        return error_response(404, 'Not Found', 'No matching lessons found')

    deleted = [lesson.id for lesson in lessons]
    for lesson in lessons:
        db.session.delete(lesson)
    db.session.commit()
    audit('delete_lessons', f'Deleted lessons {deleted}')
    return jsonify({'deleted': len(deleted), 'ids': deleted})


@bp.route('/<int:lesson_id>', methods=['GET'])
@login_required
def get_lesson(lesson_id):
    lesson = visible_lessons(current_scope()).filter(Lesson.id == lesson_id).first()
    if not lesson:
        return error_response(404, 'Not Found', 'Lesson not found')
    data = lesson.to_dict()
    data['class_name'] = lesson.school_class.name
    data['subject'] = lesson.subject.name
    data['teacher'] = lesson.teacher.full_name
    return jsonify({'data': data})


@bp.route('/<int:lesson_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_lesson(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    current_scope().require(lesson.school_id)
    changes = LessonUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    start = changes.get('start_time', lesson.start_time)
    end = changes.get('end_time', lesson.end_time)
    if end <= start:
        return error_response(400, 'Bad Request', 'end_time must be after start_time')
    error = _check_links(lesson.school_id, changes.get('class_id', lesson.class_id),
                         changes.get('subject_id', lesson.subject_id), changes.get('teacher_id', lesson.teacher_id))
    if error:
        return error

    for field, value in changes.items():
        setattr(lesson, field, value)
    db.session.commit()
    audit('update_lesson', f'Updated lesson {lesson.id}')
    return jsonify({'data': lesson.to_dict()})


@bp.route('/<int:lesson_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_lesson(lesson_id):
    lesson = Lesson.query.get_or_404(lesson_id)
    current_scope().require(lesson.school_id)
    db.session.delete(lesson)
    db.session.commit()
    audit('delete_lesson', f'Deleted lesson {lesson_id}')
    return jsonify({'message': 'Lesson deleted'})
