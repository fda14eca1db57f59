import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fedsite.errors import Conflict, LastResourceError, NotFound, ValidationError, conflict_from_integrity_error
from fedsite.extensions import db
from fedsite.models import BlockType, ContentBlock, MicrositePage, MicrositeStatus
from fedsite.services import publishing, renderer
from fedsite.services.blocks import BlockService
from fedsite.services.pages import PageService, parse_orderings

OWNER = 'owner-1'


def _home_pages(microsite_id):
    stmt = select(MicrositePage).where(
        MicrositePage.microsite_id == microsite_id,
        MicrositePage.is_home_page.is_(True),
    )
    return db.session.execute(stmt).scalars().all()


def test_template_seeds_unpublished_home_page(make_microsite):
    microsite = make_microsite('club1')

    assert [page.slug for page in microsite.pages] == ['', 'about', 'contact']
    assert microsite.home_page.slug == ''
    assert not any(page.is_published for page in microsite.pages)
    assert microsite.home_page.blocks[0].block_type == BlockType.TEXT


def test_new_home_page_demotes_previous(make_microsite):
    microsite = make_microsite('club1', template_id='blank')
    old_home = microsite.home_page

    page = PageService.create_page(microsite.id, OWNER, {'title': 'Welcome', 'is_home_page': True})

    assert page.slug == ''
    assert [p.id for p in _home_pages(microsite.id)] == [page.id]
    db.session.refresh(old_home)
    assert old_home.is_home_page is False
    assert old_home.slug == 'home'


def test_home_swap_through_update(make_microsite):
    microsite = make_microsite('club1')
    about = next(p for p in microsite.pages if p.slug == 'about')

    PageService.update_page(microsite.id, about.id, OWNER, {'is_home_page': True})
    assert [p.id for p in _home_pages(microsite.id)] == [about.id]
    assert about.slug == ''

    # Swap back: the demoted page takes a slug derived from its title
    previous = next(p for p in microsite.pages if p.title == 'Home')
    PageService.update_page(microsite.id, previous.id, OWNER, {'is_home_page': True})
    assert [p.id for p in _home_pages(microsite.id)] == [previous.id]
    db.session.refresh(about)
    assert about.slug == 'about'


def test_home_page_slug_must_be_empty(make_microsite):
    microsite = make_microsite('club1')
    about = next(p for p in microsite.pages if p.slug == 'about')
    with pytest.raises(ValidationError):
        PageService.update_page(microsite.id, about.id, OWNER, {'is_home_page': True, 'slug': 'about'})


def test_page_slugs_are_scoped_per_microsite(make_microsite, other_owner):
    first = make_microsite('club1')
    second = make_microsite('club2', principal=other_owner)

    # Both club templates ship an "about" page
    assert any(p.slug == 'about' for p in first.pages)
    assert any(p.slug == 'about' for p in second.pages)

    with pytest.raises(Conflict, match='slug already exists'):
        PageService.create_page(first.id, OWNER, {'title': 'About us', 'slug': 'about'})


def test_rename_onto_existing_slug_is_conflict(make_microsite):
    microsite = make_microsite('club1')
    contact = next(p for p in microsite.pages if p.slug == 'contact')
    with pytest.raises(Conflict):
        PageService.update_page(microsite.id, contact.id, OWNER, {'slug': 'about'})


def test_invalid_page_slug(make_microsite):
    microsite = make_microsite('club1')
    with pytest.raises(ValidationError):
        PageService.create_page(microsite.id, OWNER, {'title': 'News', 'slug': 'News & Events'})


def test_last_page_protection(make_microsite):
    microsite = make_microsite('club1', template_id='blank')
    only_page = microsite.home_page

    with pytest.raises(LastResourceError):
        PageService.delete_page(microsite.id, only_page.id, OWNER)

    extra = PageService.create_page(microsite.id, OWNER, {'title': 'News'})
    PageService.delete_page(microsite.id, extra.id, OWNER)
    assert [p.id for p in PageService.list_pages(microsite.id, OWNER)] == [only_page.id]


def test_cannot_unpublish_only_published_home(make_microsite):
    microsite = make_microsite('club1')
    home = microsite.home_page
    PageService.publish_page(microsite.id, home.id, OWNER)

    with pytest.raises(LastResourceError):
        PageService.unpublish_page(microsite.id, home.id, OWNER)

    about = next(p for p in microsite.pages if p.slug == 'about')
    PageService.publish_page(microsite.id, about.id, OWNER)
    assert PageService.unpublish_page(microsite.id, home.id, OWNER).is_published is False


def _live_microsite(make_microsite):
    microsite = make_microsite('club1')
    PageService.publish_page(microsite.id, microsite.home_page.id, OWNER)
    publishing.publish_microsite(microsite.id, OWNER)
    assert microsite.status == MicrositeStatus.PUBLISHED
    return microsite


def _assert_published_home(microsite, home_id):
    homes = _home_pages(microsite.id)
    assert [p.id for p in homes] == [home_id]
    assert homes[0].is_published is True
    assert microsite.status == MicrositeStatus.PUBLISHED


def test_live_microsite_rejects_unpublished_new_home(make_microsite):
    microsite = _live_microsite(make_microsite)
    home_id = microsite.home_page.id

    with pytest.raises(LastResourceError):
        PageService.create_page(microsite.id, OWNER, {'title': 'New Home', 'is_home_page': True})
    _assert_published_home(microsite, home_id)
    assert len(PageService.list_pages(microsite.id, OWNER)) == 3

    page = PageService.create_page(microsite.id, OWNER,
                                   {'title': 'New Home', 'is_home_page': True, 'is_published': True})
    _assert_published_home(microsite, page.id)


def test_live_microsite_home_cannot_be_unset(make_microsite):
    microsite = _live_microsite(make_microsite)
    home = microsite.home_page

    with pytest.raises(LastResourceError):
        PageService.update_page(microsite.id, home.id, OWNER, {'is_home_page': False})
    _assert_published_home(microsite, home.id)
    assert home.slug == ''


def test_live_microsite_rejects_unpublished_home_swap(make_microsite):
    microsite = _live_microsite(make_microsite)
    home_id = microsite.home_page.id
    about = next(p for p in microsite.pages if p.slug == 'about')

    with pytest.raises(LastResourceError):
        PageService.update_page(microsite.id, about.id, OWNER, {'is_home_page': True})
    _assert_published_home(microsite, home_id)

    PageService.update_page(microsite.id, about.id, OWNER, {'is_home_page': True, 'is_published': True})
    _assert_published_home(microsite, about.id)


def test_live_microsite_home_stays_published(make_microsite):
    microsite = _live_microsite(make_microsite)
    home = microsite.home_page
    # A second published page lifts the draft-only restriction
    about = next(p for p in microsite.pages if p.slug == 'about')
    PageService.publish_page(microsite.id, about.id, OWNER)

    with pytest.raises(LastResourceError):
        PageService.unpublish_page(microsite.id, home.id, OWNER)
    with pytest.raises(LastResourceError):
        PageService.update_page(microsite.id, home.id, OWNER, {'is_published': False})
    _assert_published_home(microsite, home.id)


def test_live_microsite_home_cannot_be_deleted(make_microsite):
    microsite = _live_microsite(make_microsite)
    home_id = microsite.home_page.id

    with pytest.raises(LastResourceError):
        PageService.delete_page(microsite.id, home_id, OWNER)
    _assert_published_home(microsite, home_id)

    # Back in draft the home page may go
    publishing.unpublish_microsite(microsite.id, OWNER)
    PageService.delete_page(microsite.id, home_id, OWNER)
    assert _home_pages(microsite.id) == []


def test_home_index_allows_one_home_per_microsite(make_microsite):
    microsite = make_microsite('club1', template_id='blank')

    db.session.add(MicrositePage(microsite_id=microsite.id, title='Second', slug='second-home', is_home_page=True))
    with pytest.raises(IntegrityError) as excinfo:
        db.session.commit()
    db.session.rollback()

    conflict = conflict_from_integrity_error(excinfo.value)
    assert conflict.status_code == 409
    assert conflict.message == 'Another page is already the home page'
    assert [p.id for p in _home_pages(microsite.id)] == [microsite.home_page.id]


def test_page_published_at_kept_on_republish(make_microsite):
    microsite = make_microsite('club1')
    about = next(p for p in microsite.pages if p.slug == 'about')

    PageService.publish_page(microsite.id, about.id, OWNER)
    first = about.published_at
    PageService.unpublish_page(microsite.id, about.id, OWNER)
    PageService.publish_page(microsite.id, about.id, OWNER)
    assert about.published_at == first


def test_duplicate_page_slugs(make_microsite):
    microsite = make_microsite('club1')
    about = next(p for p in microsite.pages if p.slug == 'about')

    first = PageService.duplicate_page(microsite.id, about.id, OWNER)
    second = PageService.duplicate_page(microsite.id, about.id, OWNER)
    home_copy = PageService.duplicate_page(microsite.id, microsite.home_page.id, OWNER)

    assert first.slug == 'about-copy'
    assert second.slug == 'about-copy-2'
    assert home_copy.slug == 'home-copy'
    assert first.title == 'About (Copy)'
    assert first.is_home_page is False and first.is_published is False
    assert [b.block_type for b in first.blocks] == [b.block_type for b in about.blocks]
    assert {b.id for b in first.blocks}.isdisjoint({b.id for b in about.blocks})

    contact = next(p for p in microsite.pages if p.slug == 'contact')
    PageService.create_page(microsite.id, OWNER, {'title': 'Contact copy', 'slug': 'contact-copy'})
    assert PageService.duplicate_page(microsite.id, contact.id, OWNER).slug == 'contact-copy-2'


def test_reorder_pages_is_atomic(make_microsite, other_owner):
    microsite = make_microsite('club1')
    foreign = make_microsite('club2', principal=other_owner)
    pages = PageService.list_pages(microsite.id, OWNER)
    before = {p.id: p.sort_order for p in pages}

    orderings = [{'id': pages[0].id, 'sortOrder': 5}, {'id': foreign.pages[0].id, 'sortOrder': 0}]
    with pytest.raises(ValidationError, match='do not belong'):
        PageService.reorder_pages(microsite.id, OWNER, orderings)

    db.session.rollback()
    assert {p.id: p.sort_order for p in PageService.list_pages(microsite.id, OWNER)} == before

    reordered = PageService.reorder_pages(microsite.id, OWNER, [
        {'id': pages[2].id, 'sortOrder': 0},
        {'id': pages[0].id, 'sortOrder': 1},
        {'id': pages[1].id, 'sortOrder': 2},
    ])
    assert [p.id for p in reordered] == [pages[2].id, pages[0].id, pages[1].id]


def test_parse_orderings_rejects_bad_input():
    assert parse_orderings([{'id': '3', 'sort_order': '1'}]) == {3: 1}
    for bad in [None, [], {'id': 1}, [{'id': 1}], [{'id': 1, 'sortOrder': 0}, {'id': 1, 'sortOrder': 2}]]:
        with pytest.raises(ValidationError):
            parse_orderings(bad)


def test_block_render_order_is_deterministic(make_microsite):
    microsite = make_microsite('club1', template_id='blank')
    page = PageService.create_page(microsite.id, OWNER, {'title': 'Order'})
    for block_id, sort_order in [(10, 2), (11, 2), (5, 1)]:
        db.session.add(ContentBlock(
            id=block_id,
            page_id=page.id,
            block_type=BlockType.TEXT,
            content={'text': str(block_id)},
            sort_order=sort_order,
        ))
    db.session.commit()

    assert [b.id for b in renderer.visible_blocks(page)] == [5, 10, 11]
    assert [b.id for b in BlockService.list_blocks(microsite.id, page.id, OWNER)] == [5, 10, 11]


def test_block_lifecycle(make_microsite):
    microsite = make_microsite('club1', template_id='blank')
    page = microsite.home_page

    block = BlockService.create_block(microsite.id, page.id, OWNER, {
        'type': 'video',
        'content': {'videoUrl': 'https://youtu.be/abc123', 'unknownKey': 1},
    })
    assert block.sort_order == 1
    assert block.content['videoUrl'] == 'https://youtu.be/abc123'
    assert block.content['videoType'] == 'youtube'
    assert 'unknownKey' not in block.content

    updated = BlockService.update_block(microsite.id, page.id, block.id, OWNER, {'content': {'autoplay': True}})
    assert updated.content['autoplay'] is True
    assert updated.content['videoUrl'] == 'https://youtu.be/abc123'

    with pytest.raises(ValidationError, match='cannot be changed'):
        BlockService.update_block(microsite.id, page.id, block.id, OWNER, {'type': 'text'})

    hidden = BlockService.toggle_visibility(microsite.id, page.id, block.id, OWNER)
    assert hidden.is_visible is False
    assert block.id not in [b.id for b in renderer.visible_blocks(page)]
    assert block.id in [b.id for b in BlockService.list_blocks(microsite.id, page.id, OWNER)]

    copy = BlockService.duplicate_block(microsite.id, page.id, block.id, OWNER)
    assert copy.sort_order == 2
    assert copy.content == block.content

    BlockService.delete_block(microsite.id, page.id, block.id, OWNER)
    with pytest.raises(NotFound, match='Block not found'):
        BlockService.get_block(microsite.id, page.id, block.id, OWNER)


@pytest.mark.parametrize('block_type,content', [
    ('image', {}),
    ('gallery', {'images': [{'caption': 'no url'}]}),
    ('gallery', {'columns': 9}),
    ('video', {'videoUrl': 'https://example.com/v.mp4', 'videoType': 'vimeo'}),
    ('map', {'latitude': 120, 'longitude': 0}),
    ('marquee', {}),
])
def test_block_content_validation(make_microsite, block_type, content):
    microsite = make_microsite('club1', template_id='blank')
    with pytest.raises(ValidationError):
        BlockService.create_block(microsite.id, microsite.home_page.id, OWNER, {'type': block_type, 'content': content})


def test_reorder_blocks_rejects_foreign_block(make_microsite):
    microsite = make_microsite('club1')
    home = microsite.home_page
    about = next(p for p in microsite.pages if p.slug == 'about')

    with pytest.raises(ValidationError, match='do not belong to this page'):
        BlockService.reorder_blocks(microsite.id, home.id, OWNER, [{'id': about.blocks[0].id, 'sortOrder': 0}])

    ids = [b.id for b in home.blocks]
    reordered = BlockService.reorder_blocks(microsite.id, home.id, OWNER, [
        {'id': block_id, 'sortOrder': index} for index, block_id in enumerate(reversed(ids))
    ])
    assert [b.id for b in reordered] == list(reversed(ids))


def test_other_owner_sees_not_found(make_microsite, other_owner):
    microsite = make_microsite('club1')
    with pytest.raises(NotFound):
        PageService.list_pages(microsite.id, other_owner.id)
    with pytest.raises(NotFound):
        BlockService.list_blocks(microsite.id, microsite.home_page.id, other_owner.id)
