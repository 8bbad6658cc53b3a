import math

from flask import Blueprint, jsonify, request
from flask_login import login_required

from hallmark import db
from hallmark.models.school import School
from hallmark.models.term import Term
from hallmark.routes.main import audit
from hallmark.schemas import TermCreate, TermUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg, paginate

bp = Blueprint('terms', __name__, url_prefix='/api/terms')


def days_between(start, end):
    return math.ceil((end - start).total_seconds() / 86400)


def deactivate_terms(school_id, keep_id=None):
    query = Term.query.filter_by(school_id=school_id, status='Active')
    if keep_id:
        query = query.filter(Term.id != keep_id)
    return query.update({'status': 'Inactive'}, synchronize_session='fetch')


def reactivate_latest(school_id):
    """Make the newest remaining term of a school the active one."""
    latest = Term.query.filter_by(school_id=school_id)\
                       .order_by(Term.created_at.desc(), Term.id.desc())\
                       .first()
    if latest is not None:
        latest.status = 'Active'
    return latest


def _scoped_term(term_id):
    term = Term.query.get_or_404(term_id)
    current_scope().require(term.school_id)
    return term


@bp.route('', methods=['GET'])
@login_required
def list_terms():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = scope.filter(Term.query, Term.school_id)
    school_id = int_arg('school_id')
    if school_id and scope.is_global:
        query = query.filter(Term.school_id == school_id)
    status = request.args.get('status', '').strip()
    if status:
        query = query.filter(Term.status == status)
    session = request.args.get('session', '').strip()
    if session:
        query = query.filter(Term.session == session)

    terms, pagination = paginate(query.order_by(Term.created_at.desc(), Term.id.desc()))
    return list_response([t.to_dict() for t in terms], pagination['total'], pagination=pagination)


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_term():
    payload = TermCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(404, 'Not Found', 'School not found')

    term = Term(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    if term.days_open is None:
        term.days_open = days_between(term.start, term.end)

    # Only one active term per school
    if term.status == 'Active':
        deactivate_terms(school_id)
    db.session.add(term)
    db.session.commit()

    audit('create_term', f'Created {term.term} term {term.session}')
    return jsonify({'data': term.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_terms():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    terms = current_scope().filter(Term.query, Term.school_id).filter(Term.id.in_(ids)).all()
    if not terms:
        return error_response(403, 'Forbidden', 'No terms in your school match the given ids')

    schools_needing_active = {t.school_id for t in terms if t.status == 'Active'}
    deleted = [t.id for t in terms]
    for term in terms:
        db.session.delete(term)
    db.session.flush()

    activated = []
    for school_id in schools_needing_active:
        latest = reactivate_latest(school_id)
        if latest is not None:
            activated.append(latest.id)
    db.session.commit()

    audit('delete_terms', f'Deleted terms {deleted}')
    return jsonify({'deleted': len(deleted), 'ids': deleted, 'activated': activated})


@bp.route('/<int:term_id>', methods=['GET'])
@login_required
def get_term(term_id):
    return jsonify({'data': _scoped_term(term_id).to_dict()})


@bp.route('/<int:term_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_term(term_id):
    term = _scoped_term(term_id)
    changes = TermUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    start = changes.get('start', term.start)
    end = changes.get('end', term.end)
    if end < start:
        return error_response(400, 'Bad Request', 'end must not be before start')
    if ('start' in changes or 'end' in changes) and 'days_open' not in changes:
        changes['days_open'] = days_between(start, end)

    if changes.get('status') == 'Active':
        deactivate_terms(term.school_id, keep_id=term.id)
    for field, value in changes.items():
        setattr(term, field, value)
    db.session.commit()

    audit('update_term', f'Updated term {term.id}')
    return jsonify({'data': term.to_dict()})


@bp.route('/<int:term_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_term(term_id):
    term = _scoped_term(term_id)
    was_active, school_id = term.status == 'Active', term.school_id
    db.session.delete(term)
    db.session.flush()
    if was_active:
        reactivate_latest(school_id)
    db.session.commit()
    audit('delete_term', f'Deleted term {term_id}')
    return jsonify({'message': 'Term deleted'})
