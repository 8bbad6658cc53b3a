"""
Role-based data scoping.

Every route turns the signed-in user into a :class:`Scope` and applies it to
its queries instead of branching on the role itself:

    super              -> no restriction
    admin/management   -> own school
    teacher            -> own school (+ own subjects/lessons where relevant)
    student            -> own school, published gradings only
    parent             -> schools of their children, published gradings only
"""
from flask import abort
from flask_login import current_user
from sqlalchemy import false

from hallmark.models.lesson import Lesson
from hallmark.models.school_class import SchoolClass

ADMIN_ROLES = ('super', 'admin', 'management')


class Scope:
    def __init__(self, user, school_ids, teacher=None, student=None, parent=None):
        self.user = user
        self.role = user.role
        # None means unrestricted
        self.school_ids = None if school_ids is None else tuple(sorted(set(school_ids)))
        self.teacher = teacher
        self.student = student
        self.parent = parent

    @property
    def is_global(self):
        return self.school_ids is None

    @property
    def is_empty(self):
        return self.school_ids is not None and not self.school_ids

    @property
    def is_admin(self):
        return self.role in ADMIN_ROLES

    @property
    def published_only(self):
        return self.role in ('student', 'parent')

    @property
    def children(self):
        return list(self.parent.children) if self.parent else []

    def filter(self, query, column):
        """Restrict ``query`` to rows whose ``column`` is one of the scoped schools."""
        if self.is_global:
            return query
        if self.is_empty:
            return query.filter(false())
        if len(self.school_ids) == 1:
            return query.filter(column == self.school_ids[0])
        return query.filter(column.in_(self.school_ids))

    def owns(self, school_id):
        return self.is_global or school_id in self.school_ids

    def require(self, school_id):
        """Abort with 403 unless ``school_id`` is inside the scope."""
        if not self.owns(school_id):
            abort(403, description='Access to this school is not allowed')

    def school_for_write(self, requested_school_id=None):
        """School id a create/update writes into.

        Super admins must name the school; everybody else always writes into
        their own school regardless of what the request body says.
        """
        if self.is_global:
            if not requested_school_id:
                abort(400, description='School ID is required')
            return requested_school_id
        if self.is_empty:
            abort(403, description='No school is associated with this account')
        return self.school_ids[0]

    def class_ids(self):
        """Classes the user is attached to, or None when not class-bound."""
        if self.teacher is not None:
            taught = {row[0] for row in Lesson.query.with_entities(Lesson.class_id)
                      .filter(Lesson.teacher_id == self.teacher.id).distinct()}
            mastered = {c.id for c in SchoolClass.query.filter_by(formmaster_id=self.teacher.id)}
            return sorted(taught | mastered)
        if self.student is not None:
            return [self.student.class_id]
        if self.parent is not None:
            return sorted({child.class_id for child in self.parent.children})
        if self.role in ('teacher', 'student', 'parent'):
            return []
        return None

    def form_class_ids(self):
        if self.teacher is None:
            return []
        return [c.id for c in SchoolClass.query.filter_by(formmaster_id=self.teacher.id)]

    def __repr__(self):
        return f'<Scope {self.role} schools={self.school_ids}>'


def resolve_scope(user):
    role = user.role
    if role == 'super':
        return Scope(user, None)
    if role in ('admin', 'management'):
        return Scope(user, [user.school_id] if user.school_id else [])
    if role == 'teacher':
        teacher = user.teacher_profile
        return Scope(user, [teacher.school_id] if teacher else [], teacher=teacher)
    if role == 'student':
        student = user.student_profile
        return Scope(user, [student.school_id] if student else [], student=student)
    if role == 'parent':
        parent = user.parent_profile
        return Scope(user, parent.school_ids if parent else [], parent=parent)
    return Scope(user, [])


def current_scope():
    return resolve_scope(current_user._get_current_object())
