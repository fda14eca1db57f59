import pytest
from sqlalchemy import func, select

from fedsite.extensions import db
from fedsite.models import ContentBlock, Microsite, MicrositePage


def _count(model, *criteria):
    return db.session.scalar(select(func.count()).select_from(model).where(*criteria))


def _create(client, headers, subdomain='club1', **extra):
    payload = {'name': f'{subdomain.title()} Pickleball', 'slug': subdomain, 'subdomain': subdomain}
    payload.update(extra)
    return client.post('/microsites', json=payload, headers=headers)


def test_requires_bearer_token(client):
    response = client.get('/microsites')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Authentication required', 'kind': 'unauthenticated'}

    response = client.get('/microsites', headers={'Authorization': 'Bearer not-a-token'})
    assert response.status_code == 401


def test_create_microsite(client, auth_headers):
    response = _create(client, auth_headers(), description='Best club in town')

    assert response.status_code == 201
    data = response.get_json()
    assert data['subdomain'] == 'club1'
    assert data['ownerId'] == 'owner-1'
    assert data['ownerType'] == 'club'
    assert data['status'] == 'draft'
    assert data['templateKey'] == 'club'
    assert data['themeKey'] == 'sports'
    assert data['contactEmail'] == 'owner@club.mx'
    assert data['seoDescription'] == 'Best club in town'
    assert data['publicUrl'] == 'https://club1.fed.mx'
    assert [p['slug'] for p in data['pages']] == ['', 'about', 'contact']


def test_create_maps_errors_to_status(client, auth_headers):
    headers = auth_headers()
    assert _create(client, headers).status_code == 201

    duplicate = _create(client, auth_headers(user_id='owner-2'), slug='club1-b')
    assert duplicate.status_code == 409
    assert duplicate.get_json()['kind'] == 'conflict'

    reserved = _create(client, headers, subdomain='www', slug='www-club')
    assert reserved.status_code == 400
    assert reserved.get_json()['kind'] == 'validation_error'

    missing_template = _create(client, headers, subdomain='club9', templateId='nope')
    assert missing_template.status_code == 404

    not_an_object = client.post('/microsites', json=['club'], headers=headers)
    assert not_an_object.status_code == 400


def test_owner_type_follows_role(client, auth_headers):
    committee = _create(client, auth_headers(user_id='c1', role='state_committee'), subdomain='jalisco')
    assert committee.get_json()['ownerType'] == 'state_committee'
    assert committee.get_json()['themeKey'] == 'corporate'

    federation = _create(client, auth_headers(user_id='f1', role='federation'), subdomain='sponsor', ownerType='partner')
    assert federation.get_json()['ownerType'] == 'partner'

    player = _create(client, auth_headers(user_id='p1', role='player'), subdomain='player')
    assert player.status_code == 403


def test_list_microsites_paginates(client, auth_headers):
    headers = auth_headers()
    for subdomain in ['club1', 'club2', 'club3']:
        _create(client, headers, subdomain=subdomain)
    _create(client, auth_headers(user_id='owner-2'), subdomain='club4')

    data = client.get('/microsites?limit=2', headers=headers).get_json()
    assert data['totalItems'] == 3
    assert data['totalPages'] == 2
    assert data['currentPage'] == 1
    assert len(data['items']) == 2

    second = client.get('/microsites?limit=2&page=2', headers=headers).get_json()
    assert len(second['items']) == 1

    empty = client.get('/microsites?status=published', headers=headers).get_json()
    assert empty['items'] == []
    assert empty['totalItems'] == 0

    assert client.get('/microsites?status=bogus', headers=headers).status_code == 400


def test_other_owners_microsite_is_404(client, auth_headers):
    microsite_id = _create(client, auth_headers()).get_json()['id']

    response = client.get(f'/microsites/{microsite_id}', headers=auth_headers(user_id='owner-2'))
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Microsite not found'


def test_update_and_delete_microsite(client, auth_headers):
    headers = auth_headers()
    microsite_id = _create(client, headers).get_json()['id']

    response = client.put(f'/microsites/{microsite_id}', json={
        'name': 'Renamed',
        'subdomain': 'renamed',
        'themeKey': 'minimal',
        'socialLinks': {'instagram': 'https://instagram.com/club'},
    }, headers=headers)
    assert response.status_code == 200
    data = response.get_json()
    assert data['name'] == 'Renamed'
    assert data['subdomain'] == 'renamed'
    assert data['themeKey'] == 'minimal'
    assert data['socialLinks'] == {'instagram': 'https://instagram.com/club'}

    assert client.put(f'/microsites/{microsite_id}', json={'themeKey': 'neon'}, headers=headers).status_code == 400

    page_ids = db.session.scalars(select(MicrositePage.id).where(MicrositePage.microsite_id == microsite_id)).all()
    assert len(page_ids) == 3
    assert _count(ContentBlock, ContentBlock.page_id.in_(page_ids)) > 0

    response = client.delete(f'/microsites/{microsite_id}', headers=headers)
    assert response.get_json() == {'message': 'Microsite deleted'}
    assert db.session.get(Microsite, microsite_id) is None
    assert _count(MicrositePage, MicrositePage.microsite_id == microsite_id) == 0
    assert _count(ContentBlock, ContentBlock.page_id.in_(page_ids)) == 0


def test_availability_endpoint(client, auth_headers):
    headers = auth_headers()
    _create(client, headers)

    data = client.get('/microsites/availability?subdomain=club1&slug=other', headers=headers).get_json()
    assert data['subdomain']['available'] is False
    assert data['slug']['available'] is True

    assert client.get('/microsites/availability', headers=headers).status_code == 400


def test_templates_and_themes(client, auth_headers):
    templates = client.get('/microsites/templates', headers=auth_headers()).get_json()['items']
    assert 'club' in [t['key'] for t in templates]

    themes = client.get('/microsites/themes', headers=auth_headers()).get_json()['items']
    assert {t['key'] for t in themes} == {'default', 'sports', 'minimal', 'corporate'}


def test_publish_flow_over_api(client, auth_headers):
    headers = auth_headers()
    microsite = _create(client, headers, subdomain='jalisco', templateId='blank').get_json()
    base = f"/microsites/{microsite['id']}"
    home_id = microsite['pages'][0]['id']

    check = client.get(f'{base}/publish-check', headers=headers).get_json()
    assert check['valid'] is False

    failed = client.post(f'{base}/publish', headers=headers)
    assert failed.status_code == 400
    body = failed.get_json()
    assert body['kind'] == 'publish_gate'
    assert 'Home page must be published' in body['errors']

    assert client.get('/microsites/public/jalisco').status_code == 404

    assert client.post(f'{base}/pages/{home_id}/publish', headers=headers).get_json()['isPublished'] is True
    published = client.post(f'{base}/publish', headers=headers).get_json()
    assert published['status'] == 'published'
    assert published['publishedAt'] is not None

    public = client.get('/microsites/public/jalisco').get_json()
    assert public['subdomain'] == 'jalisco'
    assert [item['path'] for item in public['navigation']] == ['/']

    assert client.post(f'{base}/unpublish', headers=headers).get_json()['status'] == 'draft'
    assert client.post(f'{base}/archive', headers=headers).get_json()['status'] == 'archived'


def test_page_endpoints(client, auth_headers):
    headers = auth_headers()
    microsite = _create(client, headers).get_json()
    base = f"/microsites/{microsite['id']}/pages"

    created = client.post(base, json={'title': 'News', 'metaTitle': 'Latest news'}, headers=headers)
    assert created.status_code == 201
    page = created.get_json()
    assert page['slug'] == 'news'
    assert page['metaTitle'] == 'Latest news'
    assert page['sortOrder'] == 3

    assert client.post(base, json={'title': 'News'}, headers=headers).status_code == 409

    updated = client.put(f"{base}/{page['id']}", json={'slug': 'latest', 'isPublished': True}, headers=headers)
    assert updated.get_json()['slug'] == 'latest'
    assert updated.get_json()['publishedAt'] is not None

    detail = client.get(f"{base}/{page['id']}", headers=headers).get_json()
    assert detail['blocks'] == []

    copy = client.post(f"{base}/{page['id']}/duplicate", headers=headers)
    assert copy.status_code == 201
    assert copy.get_json()['slug'] == 'latest-copy'

    order = [{'id': p['id'], 'sortOrder': i} for i, p in enumerate(reversed(client.get(base, headers=headers).get_json()['items']))]
    reordered = client.put(f'{base}/reorder', json={'orderings': order}, headers=headers).get_json()['items']
    assert [p['id'] for p in reordered] == [o['id'] for o in order]

    assert client.delete(f"{base}/{page['id']}", headers=headers).get_json() == {'message': 'Page deleted'}
    assert client.get(f"{base}/{page['id']}", headers=headers).status_code == 404


def test_last_page_delete_is_rejected(client, auth_headers):
    headers = auth_headers()
    microsite = _create(client, headers, templateId='blank').get_json()
    home_id = microsite['pages'][0]['id']

    response = client.delete(f"/microsites/{microsite['id']}/pages/{home_id}", headers=headers)
    assert response.status_code == 400
    assert response.get_json()['kind'] == 'last_resource'


def test_block_endpoints(client, auth_headers):
    headers = auth_headers()
    microsite = _create(client, headers, templateId='blank').get_json()
    base = f"/microsites/{microsite['id']}/pages/{microsite['pages'][0]['id']}/blocks"

    created = client.post(base, json={'type': 'image', 'content': {'imageUrl': '/img/a.png', 'alt': 'Courts'}}, headers=headers)
    assert created.status_code == 201
    block = created.get_json()
    assert block['type'] == 'image'
    assert block['content']['imageUrl'] == '/img/a.png'

    assert client.post(base, json={'type': 'image', 'content': {}}, headers=headers).status_code == 400
    assert client.post(base, json={'type': 'hologram'}, headers=headers).status_code == 400

    updated = client.put(f"{base}/{block['id']}", json={'content': {'caption': 'Center court'}}, headers=headers)
    assert updated.get_json()['content']['caption'] == 'Center court'
    assert updated.get_json()['content']['imageUrl'] == '/img/a.png'

    toggled = client.post(f"{base}/{block['id']}/toggle-visibility", headers=headers).get_json()
    assert toggled['isVisible'] is False

    copy = client.post(f"{base}/{block['id']}/duplicate", headers=headers)
    assert copy.status_code == 201

    items = client.get(base, headers=headers).get_json()['items']
    assert len(items) == 3

    order = [{'id': item['id'], 'sortOrder': i} for i, item in enumerate(reversed(items))]
    assert client.put(f'{base}/reorder', json=order, headers=headers).status_code == 200
    assert client.put(f'{base}/reorder', json=[{'id': 99999, 'sortOrder': 0}], headers=headers).status_code == 400

    assert client.delete(f"{base}/{block['id']}", headers=headers).get_json() == {'message': 'Block deleted'}
    assert client.put(f"{base}/{block['id']}", json={}, headers=headers).status_code == 404


@pytest.mark.parametrize('method,path', [
    ('get', '/microsites/999'),
    ('get', '/microsites/999/pages'),
    ('post', '/microsites/999/publish'),
])
def test_missing_microsite_is_404(client, auth_headers, method, path):
    response = getattr(client, method)(path, headers=auth_headers())
    assert response.status_code == 404
