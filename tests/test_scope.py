import pytest
from werkzeug.exceptions import BadRequest, Forbidden

from hallmark import db
from hallmark.models.parent import Parent
from hallmark.models.student import Student
from hallmark.models.user import User
from hallmark.services.scope import resolve_scope


def _scope_of(user_id):
    return resolve_scope(db.session.get(User, user_id))


def test_super_scope_is_global(app, world):
    with app.app_context():
        scope = _scope_of(world.users.super)
        assert scope.is_global
        assert scope.owns(world.school_b)
        assert scope.school_for_write(world.school_b) == world.school_b
        with pytest.raises(BadRequest):
            scope.school_for_write(None)


def test_admin_writes_into_own_school(app, world):
    with app.app_context():
        scope = _scope_of(world.users.admin_a)
        assert scope.school_ids == (world.school_a,)
        assert scope.school_for_write(world.school_b) == world.school_a
        with pytest.raises(Forbidden):
            scope.require(world.school_b)
        assert scope.class_ids() is None


def test_class_bound_roles(app, world):
    with app.app_context():
        assert _scope_of(world.users.teacher).class_ids() == [world.class_a]
        assert _scope_of(world.users.student).class_ids() == [world.class_a]
        parent_scope = _scope_of(world.users.parent)
        assert parent_scope.published_only
        assert [c.id for c in parent_scope.children] == [world.student]


def test_parent_sees_schools_of_children(app, world):
    with app.app_context():
        student = db.session.get(Student, world.student)
        student.school_id = world.school_b
        db.session.commit()

        scope = _scope_of(world.users.parent)
        assert scope.school_ids == tuple(sorted((world.school_a, world.school_b)))


def test_user_without_school_has_empty_scope(app, world):
    with app.app_context():
        user = User(role='admin', email='lost@hallmark.test')
        db.session.add(user)
        db.session.commit()

        scope = resolve_scope(user)
        assert scope.is_empty
        assert Parent.query.count() == 1
        assert scope.filter(Parent.query, Parent.school_id).count() == 0
        with pytest.raises(Forbidden):
            scope.school_for_write(world.school_a)
