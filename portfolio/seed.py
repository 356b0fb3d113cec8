"""Setup commands: default categories and the owner account."""
import click
from portfolio import db
from portfolio.models import Category, User


INITIAL_CATEGORIES = [
    'Wedding',
    'Portrait',
    'Engagement',
    'Family',
    'Event',
    'Commercial',
]


def seed_categories(names=INITIAL_CATEGORIES):
    """Add categories that don't exist yet. Returns summary."""
    added = 0
    skipped = 0

    for name in names:
        existing = Category.query.filter_by(name=name).first()
        if not existing:
            db.session.add(Category(name=name))
            added += 1
        else:
            skipped += 1

    db.session.commit()
    total = Category.query.count()

    return {
        'added': added,
        'skipped': skipped,
        'total': total
    }


def create_owner(email, password, is_admin=True):
    """Create the owner account, or reset its password if it exists."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(email=email, is_admin=is_admin)
        db.session.add(user)
    user.set_password(password)
    db.session.commit()
    return user


def register_commands(app):
    @app.cli.command('seed-categories')
    def seed_categories_command():
        """Create the default portfolio categories."""
        result = seed_categories()
        click.echo(f"Seeded categories: {result['added']} added, {result['skipped']} skipped, {result['total']} total")

    @app.cli.command('create-owner')
    @click.argument('email')
    @click.password_option()
    def create_owner_command(email, password):
        """Create (or reset) the dashboard owner account."""
        user = create_owner(email, password)
        click.echo(f"Owner ready: {user.email}")
