from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_login import current_user
from sqlalchemy import and_, or_

from hallmark import db
from hallmark.models.news import News
from hallmark.models.school import School
from hallmark.routes.main import audit
from hallmark.schemas import NewsCreate, NewsUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, json_body, int_arg, bool_arg, paginate

bp = Blueprint('news', __name__, url_prefix='/api/news')

EDITOR_ROLES = ('super', 'admin', 'management')


def visible_news():
    """Editors see every status in the schools they can edit; everyone else sees published news only.

    News without a school is edited by super admins alone, so other editors
    get it only once it is published, like the public.
    """
    published = News.status == 'PUBLISHED'
    if current_user.is_authenticated and current_user.role in EDITOR_ROLES:
        scope = current_scope()
        if scope.is_global:
            return News.query
        return News.query.filter(or_(News.school_id.in_(scope.school_ids),
                                     and_(News.school_id.is_(None), published)))
    return News.query.filter(published)


@bp.route('', methods=['GET'])
def list_news():
    query = visible_news()
    for arg, column in (('category', News.category), ('status', News.status)):
        value = request.args.get(arg, '').strip().upper()
        if value:
            query = query.filter(column == value)
    featured = bool_arg('featured')
    if featured is not None:
        query = query.filter(News.featured.is_(featured))
    school_id = int_arg('school_id')
    if school_id:
        query = query.filter(News.school_id == school_id)

    query = query.order_by(News.published_at.desc(), News.created_at.desc(), News.id.desc())
    items, pagination = paginate(query)
    return list_response([n.to_dict() for n in items], pagination['total'], pagination=pagination)


@bp.route('', methods=['POST'])
@roles_required(*EDITOR_ROLES)
def create_news():
    payload = NewsCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    news = News(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    if news.status == 'PUBLISHED' and news.published_at is None:
        news.published_at = datetime.utcnow()
    db.session.add(news)
    db.session.commit()

    audit('create_news', f'Created news {news.title}')
    return jsonify({'data': news.to_dict()}), 201


@bp.route('/<int:news_id>', methods=['GET'])
def get_news(news_id):
    news = visible_news().filter(News.id == news_id).first()
    if not news:
        return error_response(404, 'Not Found', 'News not found')
    return jsonify({'data': news.to_dict()})


@bp.route('/<int:news_id>', methods=['PUT'])
@roles_required(*EDITOR_ROLES)
def update_news(news_id):
    news = News.query.get_or_404(news_id)
    current_scope().require(news.school_id)
    changes = NewsUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    for field, value in changes.items():
        setattr(news, field, value)
    if news.status == 'PUBLISHED' and news.published_at is None:
        news.published_at = datetime.utcnow()
    db.session.commit()

    audit('update_news', f'Updated news {news.id}')
    return jsonify({'data': news.to_dict()})


@bp.route('/<int:news_id>', methods=['DELETE'])
@roles_required(*EDITOR_ROLES)
def delete_news(news_id):
    news = News.query.get_or_404(news_id)
    current_scope().require(news.school_id)
    db.session.delete(news)
    db.session.commit()
    audit('delete_news', f'Deleted news {news_id}')
    return jsonify({'message': 'News deleted'})
