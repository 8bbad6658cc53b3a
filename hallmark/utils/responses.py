import math

from flask import abort, jsonify, request


def error_response(status, error, message, **extra):
    body = {'error': error, 'message': message}
    body.update(extra)
    return jsonify(body), status


def list_response(items, total=None, **extra):
    body = {'data': items, 'total': len(items) if total is None else total}
    body.update(extra)
    return jsonify(body)


def empty_list_response():
    return jsonify({'data': [], 'total': 0, 'message': 'No records found'})


def json_body():
    """Request JSON as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='Request body must be a JSON object')
    return data


def parse_ids(arg='ids'):
    """Read ``?ids=1&ids=2`` (or ``?ids=1,2``) into a list of ints."""
    ids = []
    for raw in request.args.getlist(arg):
        for part in raw.split(','):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit():
                abort(400, description=f'Invalid id: {part}')
            ids.append(int(part))
    return sorted(set(ids))


def int_arg(name, default=None, minimum=None, maximum=None):
    value = request.args.get(name)
    if value in (None, ''):
        return default
    try:
        value = int(value)
    except ValueError:
        abort(400, description=f'{name} must be an integer')
    if minimum is not None and value < minimum:
        value = minimum
    if maximum is not None and value > maximum:
        value = maximum
    return value


def bool_arg(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ('1', 'true', 'yes')


def paginate(query, default_limit=10, max_limit=100):
    """Apply page/limit args and return (items, pagination dict)."""
    page = int_arg('page', 1, minimum=1)
    limit = int_arg('limit', default_limit, minimum=1, maximum=max_limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if total else 0,
    }
