from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from portfolio.services.email_service import email_service
from portfolio.services.gallery import ALL_CATEGORIES, category_counts, filter_by_category

main_bp = Blueprint('main', __name__)

SESSION_TYPES = ['Wedding', 'Portrait', 'Event', 'Commercial', 'Other']


def load_media():
    """Refresh the media store, categories first so photo category names resolve."""
    store = current_app.extensions['media_store']
    store.fetch_categories()
    store.fetch_photos()
    return store


@main_bp.route('/')
def index():
    """Home page - hero plus a random selection of photos."""
    store = load_media()
    grid = current_app.extensions['home_grid']
    photos = [dict(p, url=store.get_public_photo_url(p['storage_path'])) for p in grid.photos]
    return render_template('index.html', photos=photos)


@main_bp.route('/gallery')
def gallery():
    """Full photo gallery with a category filter."""
    store = load_media()
    selected = request.args.get('category', ALL_CATEGORIES)
    photos = store.get_photos()
    categories = store.get_categories()

    shown = [dict(p, url=store.get_public_photo_url(p['storage_path']))
             for p in filter_by_category(photos, selected)]
    counts = {c['name']: c['count'] for c in category_counts(photos, categories)}

    return render_template('gallery.html',
                           photos=shown,
                           categories=categories,
                           counts=counts,
                           total=len(photos),
                           selected_category=selected)


@main_bp.route('/videos')
def videos():
    """Video gallery, one folder per category in storage."""
    store = current_app.extensions['media_store']
    store.fetch_categories()
    all_videos = current_app.extensions['video_library'].list_videos()
    selected = request.args.get('category', ALL_CATEGORIES)
    categories = store.get_categories()
    counts = {c['name']: c['count'] for c in category_counts(all_videos, categories)}

    return render_template('videos.html',
                           videos=filter_by_category(all_videos, selected),
                           categories=categories,
                           counts=counts,
                           total=len(all_videos),
                           selected_category=selected)


@main_bp.route('/about')
def about():
    return render_template('about.html')


@main_bp.route('/contact', methods=['GET', 'POST'])
def contact():
    """Contact form - emails the owner."""
    if request.method == 'POST':
        name = request.form.get('name', '').strip()
        email = request.form.get('email', '').strip()
        message = request.form.get('message', '').strip()
        session_type = request.form.get('session_type', '').strip()

        if not name or not email or not message:
            flash('Please fill in your name, email and message.', 'error')
            return render_template('contact.html', session_types=SESSION_TYPES, form=request.form), 400

        result = email_service.send_contact_message(name, email, message, session_type)
        if result['success']:
            flash('Message sent successfully!', 'success')
            return redirect(url_for('main.contact'))

        current_app.logger.error(f"Contact message from {email} not sent: {result['error']}")
        flash('Failed to send message. Please try again later.', 'error')
        return render_template('contact.html', session_types=SESSION_TYPES, form=request.form), 500

    return render_template('contact.html', session_types=SESSION_TYPES, form={})


@main_bp.route('/health')
def health():
    """Health check endpoint."""
    return {'status': 'healthy', 'app': 'Photography Portfolio'}
