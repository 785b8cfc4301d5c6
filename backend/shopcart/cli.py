# Overview: Flask CLI command groups for bootstrap, seeding, and inspection.

# backend/shopcart/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (no data is touched).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Demo data:
# - python -m flask seed demo
#   Idempotent: demo customers, one admin, and a small multi-category catalog.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with admin and active flags.
# - python -m flask users create --username admin --email admin@example.com --password "admin123" --admin
#   Create a user (prompts if options are omitted).
# - python -m flask users promote john
#   Grant staff (is_admin) to an existing user.
#
# Catalog inspection:
# - python -m flask catalog low-stock --threshold 10
#   List active products at or below the stock threshold.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ShopError
from .models import User, Product
from .services import auth_service, catalog_service


DEMO_USERS = [
    # username, email, password, first_name, last_name, phone, address, is_admin
    ("admin", "admin@example.com", "admin123", "System", "Admin", "13800138000",
     "National University of Singapore", True),
    ("john", "john@example.com", "john1234", "John", "Doe", "13800138001",
     "123 Orchard Road, Singapore", False),
    ("alice", "alice@example.com", "alice123", "Alice", "Smith", "13800138002",
     "456 Marina Bay, Singapore", False),
    ("bob", "bob@example.com", "bob12345", "Bob", "Johnson", "13800138003",
     "789 Sentosa Island, Singapore", False),
]

DEMO_PRODUCTS = [
    # name, description, price_cents, stock, category, brand, rating, review_count
    ("iPhone 15 Pro", "Apple flagship phone with the A17 Pro chip", 129900, 50,
     "Electronics", "Apple", "4.8", 256),
    ("Samsung Galaxy S24", "Samsung flagship smartphone with AI photography", 119900, 30,
     "Electronics", "Samsung", "4.6", 189),
    ("MacBook Air M3", "Apple laptop with the M3 chip", 159900, 25,
     "Electronics", "Apple", "4.9", 342),
    ("Nike Air Max 270", "Classic breathable Nike sneakers", 15900, 100,
     "Clothing", "Nike", "4.4", 567),
    ("Adidas Ultraboost 22", "Adidas running shoes with energy return", 17900, 80,
     "Clothing", "Adidas", "4.6", 423),
    ("IKEA Desk", "Simple modern desk for the home office", 19900, 40,
     "Home", "IKEA", "4.1", 234),
    ("Dyson V15 Vacuum", "Cordless vacuum with strong suction", 69900, 15,
     "Home", "Dyson", "4.8", 167),
    ("Spring Boot in Action", "Practical guide to Spring Boot development", 5900, 120,
     "Books", "Posts & Telecom Press", "4.7", 89),
    ("Core Java", "The classic Java programming reference", 8900, 90,
     "Books", "China Machine Press", "4.9", 156),
    ("Wilson Tennis Racket", "Professional racket for intermediate and advanced players", 29900, 25,
     "Sports", "Wilson", "4.5", 78),
]


@click.group('system')
def system_group():
    """Schema bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Safe to run repeatedly."""
    db.create_all()
    click.echo("PASS Database schema ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask seed demo' for sample data.")


@click.group('seed')
def seed_group():
    """Demo data."""


@seed_group.command('demo')
@with_appcontext
def seed_demo():
    """
    Load demo users and products.

    Users are skipped when the username exists; products are only loaded
    into an empty catalog.
    """
    click.echo("START Seeding demo data...")

    for username, email, password, first, last, phone, address, is_admin in DEMO_USERS:
        if not auth_service.is_username_available(username):
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            auth_service.register_user(
                username, email, password,
                first_name=first, last_name=last, phone=phone, address=address,
                is_admin=is_admin,
            )
            click.echo(f"PASS Created user: {username} ({email}){' [admin]' if is_admin else ''}")
        except ShopError as e:
            click.echo(f"FAIL Failed to create user '{username}': {e.message}")

    if db.session.query(Product).count() > 0:
        click.echo("WARN  Catalog already has products, skipping...")
    else:
        for name, description, price_cents, stock, category, brand, rating, reviews in DEMO_PRODUCTS:
            catalog_service.create_product(patch={
                "name": name,
                "description": description,
                "price_cents": price_cents,
                "stock": stock,
                "category": category,
                "brand": brand,
                "image_url": f"https://via.placeholder.com/300x200?text={name.replace(' ', '+')}",
                "rating": Decimal(rating),
                "review_count": reviews,
            }, commit=False)
        db.session.commit()
        click.echo(f"PASS Created {len(DEMO_PRODUCTS)} products")

    click.echo("\nDemo credentials (development only):")
    for username, _, password, *_rest in DEMO_USERS:
        click.echo(f"   {username:<8} / {password}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant staff access')
@with_appcontext
def create_user_cmd(username, email, password, is_admin):
    """Create a new user."""
    try:
        user = auth_service.register_user(username, email, password, is_admin=is_admin)
    except ShopError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}){' [admin]' if user.is_admin else ''}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Admin'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        admin_str = "Yes" if user.is_admin else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {admin_str}")

    click.echo("="*80 + "\n")


@users_group.command('promote')
@click.argument('username')
@with_appcontext
def promote_user(username):
    """Grant staff access to USERNAME."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    if user.is_admin:
        click.echo(f"WARN  User '{username}' is already an admin")
        return

    user.is_admin = True
    db.session.commit()
    click.echo(f"PASS User '{username}' is now an admin")


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('low-stock')
@click.option('--threshold', default=10, show_default=True, type=int, help='Stock level at or below which to report')
@with_appcontext
def low_stock(threshold):
    """List active products running low on stock."""
    products = catalog_service.low_stock_products(threshold)
    if not products:
        click.echo(f"No active products at or below {threshold} units.")
        return

    click.echo(f"{'ID':<5} {'Name':<40} {'Stock':>6}")
    for p in products:
        click.echo(f"{p.id:<5} {p.name:<40} {p.stock:>6}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(seed_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
