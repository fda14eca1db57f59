import pytest
from flask import g
from sqlalchemy.exc import IntegrityError

from fedsite.blueprints.common.tenant import resolve_tenant
from fedsite.errors import Conflict, NotFound, ValidationError, conflict_from_integrity_error
from fedsite.extensions import db
from fedsite.models import Microsite, OwnerType
from fedsite.services import tenants


def _resolve_host(app, host, **headers):
    with app.test_request_context('/', base_url=f'http://{host}', headers=headers):
        microsite = resolve_tenant()
        return microsite, g.tenant_host, g.tenant_subdomain


def test_subdomain_validation(app):
    assert tenants.validate_subdomain('  Club1 ') == 'club1'

    for bad in ['', 'ab', 'a' * 64, 'club_1', '-club', 'club-', 'cl--ub']:
        with pytest.raises(ValidationError):
            tenants.validate_subdomain(bad)


def test_reserved_subdomains_rejected(app):
    for reserved in ['www', 'api', 'fed', 'admin']:
        with pytest.raises(ValidationError, match='reserved'):
            tenants.validate_subdomain(reserved)


def test_custom_domain_cannot_sit_under_root(app):
    assert tenants.validate_custom_domain('Club.Example.com.') == 'club.example.com'
    assert tenants.validate_custom_domain('') is None
    with pytest.raises(ValidationError):
        tenants.validate_custom_domain('shop.fed.mx')
    with pytest.raises(ValidationError):
        tenants.validate_custom_domain('not a domain')


def test_slugify():
    assert tenants.slugify('Club Pickleball Jalisco!') == 'club-pickleball-jalisco'
    assert tenants.slugify('  --Hello   World-- ') == 'hello-world'


def test_duplicate_subdomain_is_conflict(make_microsite, other_owner):
    make_microsite('club1')
    with pytest.raises(Conflict, match='subdomain'):
        make_microsite('club1', principal=other_owner, slug='club1-other')
    assert db.session.query(Microsite).filter_by(subdomain='club1').count() == 1


def test_unique_index_violation_maps_to_conflict(app):
    def _row(slug):
        return Microsite(name=slug, slug=slug, subdomain='shared', owner_id='o', owner_type=OwnerType.CLUB)

    db.session.add(_row('first'))
    db.session.commit()
    db.session.add(_row('second'))
    with pytest.raises(IntegrityError) as excinfo:
        db.session.commit()
    db.session.rollback()

    conflict = conflict_from_integrity_error(excinfo.value)
    assert conflict.status_code == 409
    assert conflict.message == 'This subdomain is already taken'


def test_resolve_is_case_normalised(make_microsite):
    microsite = make_microsite('club1')
    assert tenants.resolve('CLUB1').id == microsite.id
    with pytest.raises(NotFound):
        tenants.resolve('nobody')


def test_check_availability(make_microsite):
    microsite = make_microsite('club1')

    result = tenants.check_availability(subdomain='club1', slug='fresh')
    assert result['subdomain'] == {'value': 'club1', 'available': False, 'reason': 'Already taken'}
    assert result['slug']['available'] is True

    assert tenants.check_availability(subdomain='club1', exclude_id=microsite.id)['subdomain']['available'] is True
    assert tenants.check_availability(subdomain='www')['subdomain']['available'] is False


@pytest.mark.parametrize('host,expected', [
    ('club1.fed.mx', 'club1'),
    ('CLUB1.fed.mx:8080', 'club1'),
    ('www.fed.mx', None),
    ('api.fed.mx', None),
    ('fed.mx', None),
    ('127.0.0.1', None),
    ('localhost', None),
])
def test_extract_candidate(app, host, expected):
    with app.test_request_context('/'):
        assert tenants.extract_candidate(host) == expected


def test_resolver_attaches_tenant(app, make_microsite):
    microsite = make_microsite('club1')

    resolved, tenant_host, subdomain = _resolve_host(app, 'club1.fed.mx')
    assert resolved.id == microsite.id
    assert tenant_host is True
    assert subdomain == 'club1'


@pytest.mark.parametrize('host', ['www.fed.mx', 'api.fed.mx', 'fed.mx', 'localhost'])
def test_resolver_main_domain_hosts(app, make_microsite, host):
    make_microsite('club1')
    resolved, tenant_host, _ = _resolve_host(app, host)
    assert resolved is None
    assert tenant_host is False


def test_resolver_unknown_subdomain_never_raises(app):
    resolved, tenant_host, subdomain = _resolve_host(app, 'ghost.fed.mx')
    assert resolved is None
    assert tenant_host is True
    assert subdomain == 'ghost'


def test_resolver_custom_domain_and_forwarded_host(app, make_microsite):
    microsite = make_microsite('club1', custom_domain='www.clubuno.mx')

    resolved, tenant_host, subdomain = _resolve_host(app, 'www.clubuno.mx')
    assert resolved.id == microsite.id
    assert subdomain == 'club1'

    resolved, _, _ = _resolve_host(app, 'internal.lb', **{'X-Forwarded-Host': 'club1.fed.mx, proxy.local'})
    assert resolved.id == microsite.id


def test_no_subdomain_tenants_without_root_domain(app, client, make_microsite, auth_headers):
    microsite = make_microsite('club1', custom_domain='clubuno.mx')
    app.config['ROOT_DOMAIN'] = None

    with app.test_request_context('/'):
        assert tenants.extract_candidate('fed.mx') is None
        assert tenants.extract_candidate('club1.fed.mx') is None

    resolved, tenant_host, _ = _resolve_host(app, 'fed.mx')
    assert resolved is None
    assert tenant_host is False

    resolved, tenant_host, _ = _resolve_host(app, 'clubuno.mx')
    assert resolved.id == microsite.id
    assert tenant_host is True

    response = client.get('/microsites', base_url='http://fed.mx', headers=auth_headers())
    assert response.status_code == 200
    assert [item['subdomain'] for item in response.get_json()['items']] == ['club1']


def test_public_url_prefers_custom_domain(make_microsite):
    assert tenants.public_url(make_microsite('club1')) == 'https://club1.fed.mx'
    assert tenants.public_url(make_microsite('club2', custom_domain='club2.mx')) == 'https://club2.mx'
