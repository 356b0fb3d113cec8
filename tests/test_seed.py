from portfolio.models import User
from portfolio.seed import INITIAL_CATEGORIES, create_owner, seed_categories


def test_seed_categories_is_idempotent(ctx):
    assert seed_categories() == {'added': 6, 'skipped': 0, 'total': len(INITIAL_CATEGORIES)}
    assert seed_categories() == {'added': 0, 'skipped': 6, 'total': 6}


def test_create_owner_resets_password(ctx):
    create_owner('Owner@Example.com ', 'first')
    create_owner('owner@example.com', 'second')

    user = User.query.one()
    assert user.email == 'owner@example.com'
    assert user.check_password('second')


def test_cli_seed_command(app):
    result = app.test_cli_runner().invoke(args=['seed-categories'])
    assert 'Seeded categories: 6 added' in result.output
