"""Microsite management CLI commands."""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import select

from fedsite.auth import Principal
from fedsite.errors import MicrositeError, NotFound
from fedsite.extensions import db
from fedsite.models import Microsite
from fedsite.services import tenants
from fedsite.services.microsites import create_microsite
from fedsite.services.publishing import can_publish


@click.group('microsite')
def microsite_commands():
    """Microsite management commands."""
    pass


@microsite_commands.command('create')
@click.option('--name', required=True, help='Microsite name')
@click.option('--subdomain', required=True, help='Subdomain under ROOT_DOMAIN')
@click.option('--slug', help='Slug (defaults to the subdomain)')
@click.option('--owner-id', required=True, help='Owner account id')
@click.option('--owner-type', default='club', show_default=True,
              type=click.Choice(['club', 'state_committee', 'partner']))
@click.option('--template', 'template_id', help='Template key (defaults by owner type)')
@click.option('--email', help='Contact email')
@with_appcontext
def create(name, subdomain, slug, owner_id, owner_type, template_id, email):
    """Create a draft microsite on behalf of an owner.

    Example:
        flask microsite create --name "Club Jalisco" --subdomain jalisco --owner-id 42
    """
    principal = Principal(id=owner_id, role='federation', email=email)
    try:
        microsite = create_microsite(principal, {
            'name': name,
            'subdomain': subdomain,
            'slug': slug or subdomain,
            'owner_type': owner_type,
            'template_id': template_id,
        })
    except MicrositeError as e:
        click.echo(click.style(f'Error: {e.message}', fg='red'))
        return

    click.echo(click.style('✓ Microsite created successfully!', fg='green'))
    click.echo(f'  Name: {microsite.name}')
    click.echo(f'  Subdomain: {microsite.subdomain}')
    click.echo(f'  ID: {microsite.id}')
    click.echo(f'  Pages: {len(microsite.pages)}')
    url = tenants.public_url(microsite)
    if url:
        click.echo(f'\nPublic URL: {url}')


@microsite_commands.command('list')
@click.option('--owner-id', help='Only microsites of this owner')
@with_appcontext
def list_microsites(owner_id):
    """List microsites."""
    stmt = select(Microsite).order_by(Microsite.id)
    if owner_id:
        stmt = stmt.where(Microsite.owner_id == owner_id)
    microsites = db.session.execute(stmt).scalars().all()

    if not microsites:
        click.echo('No microsites found.')
        return

    click.echo(f'Found {len(microsites)} microsite(s):\n')
    for microsite in microsites:
        click.echo(f'• {microsite.name}')
        click.echo(f'  Subdomain: {microsite.subdomain}')
        click.echo(f'  ID: {microsite.id}')
        click.echo(f'  Owner: {microsite.owner_id} ({microsite.owner_type.value})')
        click.echo(f'  Status: {microsite.status.value}{" (public)" if microsite.is_public else ""}')
        click.echo()


def _find(identifier):
    if identifier.isdigit():
        microsite = db.session.get(Microsite, int(identifier))
        if microsite is not None:
            return microsite
    return tenants.resolve(identifier)


@microsite_commands.command('info')
@click.argument('identifier')
@with_appcontext
def info(identifier):
    """Show a microsite by id or subdomain."""
    try:
        microsite = _find(identifier)
    except NotFound:
        click.echo(click.style(f'Error: Microsite "{identifier}" not found', fg='red'))
        return

    click.echo(f'Microsite: {microsite.name}')
    click.echo(f'Subdomain: {microsite.subdomain}')
    click.echo(f'Slug: {microsite.slug}')
    if microsite.custom_domain:
        click.echo(f'Custom domain: {microsite.custom_domain}')
    click.echo(f'Status: {microsite.status.value}')
    click.echo(f'Theme: {microsite.theme_key}')
    if microsite.published_at:
        click.echo(f'First published: {microsite.published_at.strftime("%Y-%m-%d %H:%M:%S")}')
    click.echo()

    click.echo('Pages:')
    for page in microsite.pages:
        flags = []
        if page.is_home_page:
            flags.append('home')
        if page.is_published:
            flags.append('published')
        click.echo(f'  /{page.slug:<20} {page.title} [{", ".join(flags) or "draft"}] ({len(page.blocks)} blocks)')


@microsite_commands.command('publish-check')
@click.argument('identifier')
@with_appcontext
def publish_check(identifier):
    """Report whether a microsite passes the publish gate."""
    try:
        microsite = _find(identifier)
    except NotFound:
        click.echo(click.style(f'Error: Microsite "{identifier}" not found', fg='red'))
        return

    result = can_publish(microsite)
    if result.valid:
        click.echo(click.style(f'✓ {microsite.subdomain} is ready to publish', fg='green'))
        return

    click.echo(click.style(f'✗ {microsite.subdomain} cannot be published:', fg='yellow'))
    for error in result.errors:
        click.echo(f'  - {error}')


@microsite_commands.command('resolve')
@click.argument('host')
@with_appcontext
def resolve(host):
    """Show which microsite a Host header resolves to."""
    from fedsite.blueprints.common.tenant import resolve_tenant

    with current_app.test_request_context('/', base_url=f'http://{host}'):
        microsite = resolve_tenant()

    if microsite is None:
        click.echo(f'{host}: no microsite')
        return
    click.echo(f'{host}: {microsite.subdomain} (id {microsite.id}, {microsite.status.value})')
