from flask import Blueprint, jsonify, request

from hallmark import db
from hallmark.models.gallery import Gallery
from hallmark.models.school import School
from hallmark.routes.main import audit
from hallmark.schemas import GalleryCreate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, json_body, int_arg, bool_arg

bp = Blueprint('gallery', __name__, url_prefix='/api/gallery')


@bp.route('', methods=['GET'])
def list_gallery():
    query = Gallery.query
    category = request.args.get('category', '').strip().upper()
    if category:
        query = query.filter(Gallery.category == category)
    is_active = bool_arg('is_active')
    if is_active is not None:
        query = query.filter(Gallery.is_active.is_(is_active))
    school_id = int_arg('school_id')
    if school_id:
        query = query.filter(Gallery.school_id == school_id)

    items = query.order_by(Gallery.order.asc(), Gallery.created_at.desc(), Gallery.id.desc()).all()
    return list_response([g.to_dict() for g in items])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_gallery_item():
    payload = GalleryCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    item = Gallery(
        title=payload.title,
        description=payload.description,
        image_url=str(payload.image_url),
        category=payload.category,
        is_active=payload.is_active,
        order=payload.order,
        school_id=school_id,
    )
    db.session.add(item)
    db.session.commit()

    audit('create_gallery', f'Added gallery image {item.title}')
    return jsonify({'data': item.to_dict()}), 201


@bp.route('/<int:item_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_gallery_item(item_id):
    item = Gallery.query.get_or_404(item_id)
    current_scope().require(item.school_id)
    db.session.delete(item)
    db.session.commit()
    audit('delete_gallery', f'Deleted gallery image {item_id}')
    return jsonify({'message': 'Gallery item deleted'})
