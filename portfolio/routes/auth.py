"""
Owner authentication - email/password login for the dashboard.

Public pages never require a session; everything under /dashboard does.
"""

from functools import wraps
from flask import Blueprint, render_template, request, redirect, url_for, session, flash, current_app, g, has_request_context
from sqlalchemy.exc import SQLAlchemyError

from portfolio import db
from portfolio.models import User

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def get_current_user():
    """Get the logged-in owner, or None.

    Background batch jobs have no request, so they set g.user_id instead.
    Lookup failures count as unauthenticated.
    """
    user_id = g.get('user_id')
    if not user_id and has_request_context():
        user_id = session.get('user_id')
    if not user_id:
        return None
    try:
        return db.session.get(User, user_id)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error loading user {user_id}: {e}")
        return None


def login_required(f):
    """Decorator to require an authenticated owner."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_current_user():
            session.pop('user_id', None)
            return redirect(url_for('auth.login', next=request.full_path.rstrip('?')))
        return f(*args, **kwargs)
    return decorated_function


def _safe_next_url(next_url):
    """Only allow relative redirects back into the site."""
    if next_url and next_url.startswith('/') and not next_url.startswith('//'):
        return next_url
    return url_for('dashboard.index')


@auth_bp.route('', methods=['GET', 'POST'])
def login():
    """Owner login page."""
    if get_current_user():
        return redirect(url_for('dashboard.index'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Please enter your email and password.', 'error')
            return render_template('auth/login.html'), 400

        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            flash('Invalid email or password', 'error')
            return render_template('auth/login.html'), 401

        session['user_id'] = user.id
        session.permanent = True
        current_app.logger.info(f"Owner logged in: {user.email}")
        return redirect(_safe_next_url(request.args.get('next')))

    return render_template('auth/login.html')


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """Log out the owner."""
    session.pop('user_id', None)
    for key in [k for k in session if k.startswith('selection_')]:
        session.pop(key)
    flash('Logged out successfully', 'success')
    return redirect(url_for('main.index'))
