"""
Shared fixtures: a canned copy of the wol.jw.org pages the verse manager reads.
"""

import pytest
import requests

from verse_canvas.verse_cache import VerseCache
from verse_canvas.verse_manager import VerseManager

BASE_URL = 'https://wol.jw.org'

TRANSLATIONS_HTML = """
<html><body>
<ul class="directory">
  <li><a href="/en/wol/binav/r1/lp-e/nwtsty">
    <div class="cardTitleBlock"> New World Translation of the Holy Scriptures (Study Edition) </div>
    <div class="cardTitleDetail">2018</div>
  </a></li>
  <li><a href="/en/wol/binav/r1/lp-e/bi12">
    <div class="cardTitleBlock">New World Translation (1984)</div>
    <div class="cardTitleDetail">1984</div>
  </a></li>
</ul>
<ul class="directory"><li><a href="/en/wol/publications/r1/lp-e">Publications</a></li></ul>
</body></html>
"""

BOOKS_HTML = """
<html><body>
<ul class="books hebrew">
  <li class="book"><a href="/en/wol/binav/r1/lp-e/nwtsty/1"><span class="abbreviation">Ge</span><span class="name">Genesis</span></a></li>
  <li class="book"><a href="/en/wol/binav/r1/lp-e/nwtsty/2"><span class="abbreviation">Ex</span><span class="name"> Exodus </span></a></li>
</ul>
</body></html>
"""

CHAPTER_HTML = """
<html><body><div id="bibleText">
<p><span class="v" id="v1-1-1-1"><span class="cl"><strong>1</strong> </span>In the beginning God created the heavens and the earth.<a class="b">+</a></span>
<span class="v" id="v1-1-2-1"><strong>2</strong> Now the earth was formless and desolate,<a class="fn">*</a> and there was darkness</span></p>
<p><span class="v" id="v1-1-2-2">upon the surface of the watery deep.<a class="b">+</a></span></p>
</div></body></html>
"""


class FakeResponse:
    def __init__(self, url, text='', status_code=200):
        self.url = url
        self.text = text
        self.status_code = status_code


class FakeSession:
    """Serves canned pages by URL and counts requests."""

    def __init__(self, pages=None):
        self.headers = {}
        self.requests = []
        self.pages = pages if pages is not None else default_pages()

    def get(self, url, timeout=None):
        self.requests.append(url)
        page = self.pages.get(url)
        if page is None:
            return FakeResponse(url, '', 404)
        if isinstance(page, Exception):
            raise page
        return page


def default_pages():
    return {
        f'{BASE_URL}/en/wol/h/': FakeResponse(f'{BASE_URL}/en/wol/h/r1/lp-e'),
        f'{BASE_URL}/en/wol/bibles/r1/lp-e': FakeResponse(f'{BASE_URL}/en/wol/bibles/r1/lp-e', TRANSLATIONS_HTML),
        f'{BASE_URL}/en/wol/binav/r1/lp-e/nwtsty': FakeResponse(f'{BASE_URL}/en/wol/binav/r1/lp-e/nwtsty', BOOKS_HTML),
        f'{BASE_URL}/en/wol/b/r1/lp-e/nwtsty/1/1/': FakeResponse(f'{BASE_URL}/en/wol/b/r1/lp-e/nwtsty/1/1/', CHAPTER_HTML),
        f'{BASE_URL}/fr/wol/h/': FakeResponse(f'{BASE_URL}/en/wol/h/r1/lp-e'),
        f'{BASE_URL}/de/wol/h/': requests.ConnectionError('connection refused'),
        f'{BASE_URL}/es/wol/h/': FakeResponse(f'{BASE_URL}/es/wol/h/', '', 503),
        f'{BASE_URL}/it/wol/h/': FakeResponse(f'{BASE_URL}/it/wol/h/', '', 403),
    }


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def verse_manager(fake_session):
    return VerseManager(cache=VerseCache(max_entries=100, ttl_seconds=0), session=fake_session,
                        base_url=BASE_URL, timeout=5)
