from fedsite.auth import verify_token
from fedsite.services import publishing
from fedsite.services.pages import PageService


def test_microsite_create_and_list(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        'microsite', 'create',
        '--name', 'Comite Jalisco',
        '--subdomain', 'jalisco',
        '--owner-id', 'c1',
        '--owner-type', 'state_committee',
        '--email', 'info@jalisco.mx',
    ])
    assert result.exit_code == 0
    assert 'Microsite created successfully' in result.output
    assert 'https://jalisco.fed.mx' in result.output

    result = runner.invoke(args=['microsite', 'list'])
    assert 'Comite Jalisco' in result.output
    assert 'c1 (state_committee)' in result.output


def test_microsite_create_reports_conflict(app, make_microsite):
    make_microsite('club1')
    runner = app.test_cli_runner()

    result = runner.invoke(args=['microsite', 'create', '--name', 'Again', '--subdomain', 'club1', '--slug', 'again', '--owner-id', 'x'])
    assert 'Error: This subdomain is already taken' in result.output


def test_publish_check_and_info(app, make_microsite):
    microsite = make_microsite('club1')
    runner = app.test_cli_runner()

    result = runner.invoke(args=['microsite', 'publish-check', 'club1'])
    assert 'cannot be published' in result.output
    assert publishing.HOME_PAGE_UNPUBLISHED in result.output

    PageService.publish_page(microsite.id, microsite.home_page.id, 'owner-1')
    result = runner.invoke(args=['microsite', 'publish-check', str(microsite.id)])
    assert 'ready to publish' in result.output

    result = runner.invoke(args=['microsite', 'info', 'club1'])
    assert 'Subdomain: club1' in result.output
    assert '/about' in result.output

    result = runner.invoke(args=['microsite', 'info', 'ghost'])
    assert 'not found' in result.output


def test_resolve_command(app, make_microsite):
    make_microsite('club1')
    runner = app.test_cli_runner()

    assert 'club1.fed.mx: club1' in runner.invoke(args=['microsite', 'resolve', 'club1.fed.mx']).output
    assert 'www.fed.mx: no microsite' in runner.invoke(args=['microsite', 'resolve', 'www.fed.mx']).output


def test_token_issue(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['token', 'issue', '--user-id', '42', '--role', 'partner'])

    principal = verify_token(result.output.strip())
    assert principal.id == '42'
    assert principal.role == 'partner'
