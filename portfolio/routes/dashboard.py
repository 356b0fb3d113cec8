"""
Owner dashboard - media management.

The page itself is server rendered; uploads, deletes and selection are
JSON endpoints the page calls. Uploads and deletes start a batch and
return its id right away (202); the page then polls the batch's progress.
"""

from flask import Blueprint, render_template, request, session, current_app, jsonify

from portfolio.routes.auth import login_required, get_current_user
from portfolio.services.batch_jobs import detach_upload, run_delete_batch, run_upload_batch, start_batch
from portfolio.services.delete_progress import DeleteProgressTracker
from portfolio.services.gallery import top_categories
from portfolio.services.selection import MultiSelect
from portfolio.services.upload_progress import UploadProgressTracker

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')

MEDIA_KINDS = {'photos': 'photo', 'videos': 'video'}
ALLOWED_MIMETYPES = {'photo': 'image/', 'video': 'video/'}


def _error(message, status=400):
    return jsonify({'success': False, 'error': message}), status


def _valid_id(value):
    return isinstance(value, str) and bool(value.strip())


def _valid_ids(values):
    return isinstance(values, list) and all(_valid_id(v) for v in values)


def _store():
    store = current_app.extensions['media_store']
    store.ensure_loaded()
    return store


def _load_selection(kind):
    return MultiSelect.from_dict(session.get(f'selection_{kind}'))


def _save_selection(kind, selection):
    session[f'selection_{kind}'] = selection.to_dict()
    return selection


def _current_items(kind):
    """Every photo or video as dicts with 'id' and a display 'name'."""
    if kind == 'photos':
        return [
            {'id': p['id'], 'name': p['title'] or p['storage_path'].rsplit('/', 1)[-1], 'type': 'photo'}
            for p in _store().get_photos()
        ]
    return [
        {'id': v['name'], 'name': v['name'], 'type': 'video'}
        for v in current_app.extensions['video_library'].list_videos()
    ]


@dashboard_bp.route('')
@login_required
def index():
    """Main dashboard page."""
    store = current_app.extensions['media_store']
    store.fetch_categories()
    store.fetch_photos()

    photos = [dict(p, url=store.get_public_photo_url(p['storage_path'])) for p in store.get_photos()]
    categories = store.get_categories()
    videos = current_app.extensions['video_library'].list_videos()

    return render_template('dashboard/index.html',
                           user=get_current_user(),
                           photos=photos,
                           videos=videos,
                           categories=categories,
                           top_categories=top_categories(photos, categories, limit=2),
                           photo_selection=_load_selection('photos'),
                           video_selection=_load_selection('videos'))


# ============== UPLOADS ==============

def _start_upload(kind):
    files = [f for f in request.files.getlist('files') if f and f.filename]
    category_id = request.form.get('category_id', '').strip()

    if not files:
        return _error('Please select at least one file')
    if not category_id:
        return _error('Please choose a category')

    prefix = ALLOWED_MIMETYPES[kind]
    rejected = [f.filename for f in files if not (f.mimetype or '').startswith(prefix)]
    if rejected:
        return _error(f"Not a {kind} file: {', '.join(rejected)}")

    store = _store()
    if not any(c['id'] == category_id for c in store.get_categories()):
        return _error('Category not found', 404)

    registry = current_app.extensions['progress_registry']
    batch_id, tracker = registry.new_upload()
    item_ids = tracker.initialize_upload(files)
    detached = [detach_upload(f) for f in files]

    app = current_app._get_current_object()
    user = get_current_user()
    current_app.logger.info(f"Starting {kind} upload batch {batch_id} with {len(files)} file(s)")
    start_batch(app, run_upload_batch, app, tracker, category_id, detached, item_ids, user.id, kind)

    return jsonify({
        'success': True,
        'batch_id': batch_id,
        'item_ids': item_ids,
        'progress': tracker.state(),
    }), 202


@dashboard_bp.route('/photos', methods=['POST'])
@login_required
def upload_photos():
    return _start_upload('photo')


@dashboard_bp.route('/videos', methods=['POST'])
@login_required
def upload_videos():
    return _start_upload('video')


@dashboard_bp.route('/uploads/<batch_id>')
@login_required
def upload_progress(batch_id):
    tracker = current_app.extensions['progress_registry'].get(batch_id, UploadProgressTracker)
    if tracker is None:
        return _error('Upload batch not found', 404)
    return jsonify({'success': True, 'progress': tracker.state()})


@dashboard_bp.route('/uploads/<batch_id>/cancel', methods=['POST'])
@login_required
def cancel_upload(batch_id):
    """Hide a batch's progress. Uploads already running are not aborted."""
    tracker = current_app.extensions['progress_registry'].get(batch_id, UploadProgressTracker)
    if tracker is None:
        return _error('Upload batch not found', 404)
    tracker.reset_upload()
    return jsonify({'success': True, 'progress': tracker.state()})


# ============== EDITS ==============

@dashboard_bp.route('/photos/<photo_id>', methods=['PATCH'])
@login_required
def update_photo(photo_id):
    """Change a photo's title and/or category."""
    data = request.get_json(silent=True) or {}
    if 'title' not in data and 'category_id' not in data:
        return _error('Nothing to update')

    store = _store()
    if store.get_photo(photo_id) is None:
        return _error('Photo not found', 404)

    if 'title' in data and not store.update_photo_title(photo_id, data['title']):
        return _error('Failed to update title', 500)
    if 'category_id' in data and not store.update_photo_category(photo_id, data['category_id']):
        return _error('Failed to update category')

    return jsonify({'success': True, 'photo': store.get_photo(photo_id)})


# ============== DELETES ==============

def _start_delete(items):
    registry = current_app.extensions['progress_registry']
    batch_id, tracker = registry.new_delete()
    tracker.initialize_delete(items)

    app = current_app._get_current_object()
    current_app.logger.info(f"Starting delete batch {batch_id} with {len(items)} item(s)")
    start_batch(app, run_delete_batch, app, tracker, items)

    return jsonify({'success': True, 'batch_id': batch_id, 'progress': tracker.state()}), 202


@dashboard_bp.route('/photos/<photo_id>', methods=['DELETE'])
@login_required
def delete_photo(photo_id):
    photo = _store().get_photo(photo_id)
    if photo is None:
        return _error('Photo not found', 404)
    name = photo['title'] or photo['storage_path'].rsplit('/', 1)[-1]
    return _start_delete([{'id': photo_id, 'name': name, 'type': 'photo'}])


@dashboard_bp.route('/videos/<path:name>', methods=['DELETE'])
@login_required
def delete_video(name):
    return _start_delete([{'id': name, 'name': name, 'type': 'video'}])


@dashboard_bp.route('/<kind>/bulk-delete', methods=['POST'])
@login_required
def bulk_delete(kind):
    """Delete the given ids, or the current selection when none are given."""
    if kind not in MEDIA_KINDS:
        return _error('Unknown media kind', 404)

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _error('Invalid request body')
    ids = data.get('ids')
    if ids is not None and not _valid_ids(ids):
        return _error('ids must be a list of item ids')

    selection = _load_selection(kind)
    ids = list(dict.fromkeys(ids or selection.get_selected_ids()))
    if not ids:
        return _error('Nothing selected')

    names = {item['id']: item['name'] for item in _current_items(kind)}
    items = [{'id': item_id, 'name': names.get(item_id, item_id), 'type': MEDIA_KINDS[kind]} for item_id in ids]

    selection.exit_selection_mode()
    _save_selection(kind, selection)
    return _start_delete(items)


@dashboard_bp.route('/deletes/<batch_id>')
@login_required
def delete_progress(batch_id):
    tracker = current_app.extensions['progress_registry'].get(batch_id, DeleteProgressTracker)
    if tracker is None:
        return _error('Delete batch not found', 404)
    return jsonify({'success': True, 'progress': tracker.state()})


# ============== SELECTION ==============

@dashboard_bp.route('/<kind>/selection')
@login_required
def get_selection(kind):
    if kind not in MEDIA_KINDS:
        return _error('Unknown media kind', 404)
    return jsonify({'success': True, 'selection': _load_selection(kind).to_dict()})


@dashboard_bp.route('/<kind>/selection/<action>', methods=['POST'])
@login_required
def change_selection(kind, action):
    """Selection actions: mode, exit, toggle (JSON 'id'), all, none."""
    if kind not in MEDIA_KINDS:
        return _error('Unknown media kind', 404)

    selection = _load_selection(kind)
    if action == 'mode':
        selection.enter_selection_mode()
    elif action == 'exit':
        selection.exit_selection_mode()
    elif action == 'toggle':
        data = request.get_json(silent=True)
        item_id = data.get('id') if isinstance(data, dict) else None
        if not _valid_id(item_id):
            return _error('Item id required')
        selection.toggle_selection(item_id)
    elif action == 'all':
        selection.select_all(_current_items(kind))
    elif action == 'none':
        selection.select_none()
    else:
        return _error('Unknown selection action', 404)

    _save_selection(kind, selection)
    return jsonify({'success': True, 'selection': selection.to_dict()})
