"""
Retrieves languages, translations, books and verse text from the wol.jw.org online library.
"""

import os
import re
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

import pycountry
import requests
from bs4 import BeautifulSoup

from verse_canvas.error_log_manager import error_log_manager
from verse_canvas.verse_cache import VerseCache


class VerseSourceError(Exception):
    """Base class for verse retrieval failures."""


class InvalidLanguage(VerseSourceError):
    pass


class NotFound(VerseSourceError):
    pass


class UpstreamUnavailable(VerseSourceError):
    pass


# Footnote and cross-reference markers inside verse text
MARKER_PATTERN = re.compile(r'[+*]')


def to_number(value: Any, default: int = 1) -> int:
    """Positive int from a path/CLI value, default when missing or invalid."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class VerseManager:
    def __init__(self, cache: Optional[VerseCache] = None, session: Optional[requests.Session] = None,
                 base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url or os.getenv('WOL_BASE_URL', 'https://wol.jw.org')
        self.timeout = timeout if timeout is not None else int(os.getenv('REQUEST_TIMEOUT', '10'))
        self.cache = cache if cache is not None else VerseCache()

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36'
        })

    # Validation

    def validate_language(self, language: str) -> str:
        """Lower-cased language, or InvalidLanguage unless it is an ISO 639-1 code."""
        if not isinstance(language, str) or len(language) != 2 or self._lookup_language(language) is None:
            raise InvalidLanguage(f"Invalid language: {language!r}")
        return language.lower()

    def _lookup_language(self, language: str):
        try:
            return pycountry.languages.get(alpha_2=language.lower())
        except KeyError:
            return None

    def get_language_name(self, language: str) -> str:
        language = self.validate_language(language)
        return self._lookup_language(language).name

    # Errors

    def _failure(self, error, error_type: str, message: str, url: Optional[str] = None,
                 exception: Optional[BaseException] = None, level: int = logging.ERROR):
        """Log and record a retrieval failure, returning the exception to raise."""
        self.logger.log(level, message, extra={'error_recorded': True})
        error_log_manager.log_error('verse_manager', error_type, message,
                                    details={'url': url} if url else None, exception=exception)
        return error

    # HTTP

    def _fetch(self, path_or_url: str) -> requests.Response:
        """GET a WOL page, mapping failures onto the VerseSourceError kinds."""
        url = urljoin(self.base_url, path_or_url)
        self.logger.debug(f"Fetching {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise self._failure(UpstreamUnavailable('wol.jw.org server is not available'), 'upstream_unavailable',
                                f"wol.jw.org unreachable for {url}: {e}", url, e) from e
        except requests.RequestException as e:
            raise self._failure(VerseSourceError('Unknown error occurred'), 'unknown_error',
                                f"Request failed for {url}: {e}", url, e) from e

        if response.status_code >= 500:
            raise self._failure(UpstreamUnavailable('wol.jw.org server is not available'), 'upstream_unavailable',
                                f"wol.jw.org returned {response.status_code} for {url}", url)
        if response.status_code == 404:
            raise self._failure(NotFound('Not found'), 'not_found', f"Not found: {url}", url,
                                level=logging.WARNING)
        if response.status_code >= 400:
            raise self._failure(VerseSourceError('Unknown error occurred'), 'unknown_error',
                                f"Unexpected status {response.status_code} for {url}", url)
        return response

    def _fetch_soup(self, path_or_url: str) -> BeautifulSoup:
        response = self._fetch(path_or_url)
        return BeautifulSoup(response.text, 'html.parser')

    # Library metadata

    def get_language_code(self, language: str = 'en') -> str:
        """WOL library code for a language, e.g. 'r1/lp-e' for English."""
        language = self.validate_language(language)
        return self.cache.get_or_load(('language', language), lambda: self._load_language(language))['code']

    def _load_language(self, language: str) -> Dict[str, str]:
        response = self._fetch(f"/{language}/wol/h/")
        # WOL redirects the language home page to /<lang>/wol/h/<code>
        prefix = f"/{language}/wol/h/"
        path = urlparse(response.url).path
        if not path.startswith(prefix):
            raise self._failure(InvalidLanguage('Wrong language'), 'invalid_language',
                                f"{language} home page redirected to {path}", response.url,
                                level=logging.WARNING)

        code = path[len(prefix):].strip('/')
        if not code:
            raise self._failure(NotFound(f"No library code for language {language}"), 'not_found',
                                f"No library code in {path}", response.url, level=logging.WARNING)

        self.logger.info(f"Language {language} uses library code {code}")
        return {'name': self.get_language_name(language), 'code': code}

    def get_translations(self, language: str = 'en') -> Dict[str, Dict[str, str]]:
        """Bible translations available in a language, keyed by translation id."""
        language = self.validate_language(language)
        return self.cache.get_or_load(('translations', language), lambda: self._load_translations(language))

    def _load_translations(self, language: str) -> Dict[str, Dict[str, str]]:
        code = self.get_language_code(language)
        soup = self._fetch_soup(f"/{language}/wol/bibles/{code}")

        translations = {}
        directory = soup.select_one('ul.directory')
        for link in directory.select('li a') if directory is not None else []:
            href = link.get('href', '')
            translation_id = href.rstrip('/').rsplit('/', 1)[-1]
            if not translation_id:
                continue

            name = link.select_one('.cardTitleBlock')
            year = link.select_one('.cardTitleDetail')
            translations[translation_id] = {
                'link': href,
                'name': name.get_text().strip() if name else '',
                'year': year.get_text().strip() if year else '',
            }

        if not translations:
            message = f"No translations listed for language {language}"
            raise self._failure(NotFound(message), 'not_found', message, level=logging.WARNING)

        self.logger.info(f"Found {len(translations)} translations for {language}")
        return translations

    def resolve_translation(self, language: str = 'en', translation_id: Optional[str] = None):
        """(id, translation) for translation_id, falling back to the first listed."""
        translations = self.get_translations(language)
        translation_id = str(translation_id) if translation_id not in (None, '') else None

        if translation_id not in translations:
            fallback = next(iter(translations))
            if translation_id is not None:
                self.logger.warning(f"Translation {translation_id} not available in {language}, using {fallback}")
            translation_id = fallback

        return translation_id, translations[translation_id]

    def get_bible_books(self, language: str = 'en', translation_id: Optional[str] = None) -> Dict[int, Dict[str, str]]:
        """Books of a translation keyed by 1-based book number."""
        language = self.validate_language(language)
        translation_id, translation = self.resolve_translation(language, translation_id)
        return self.cache.get_or_load(('books', language, translation_id),
                                      lambda: self._load_books(translation_id, translation))

    def _load_books(self, translation_id: str, translation: Dict[str, str]) -> Dict[int, Dict[str, str]]:
        soup = self._fetch_soup(translation['link'])
        books = {
            number: {'name': name.get_text().strip()}
            for number, name in enumerate(soup.select('li.book a span.name'), 1)
        }
        if not books:
            message = f"No books listed for translation {translation_id}"
            raise self._failure(NotFound(message), 'not_found', message, translation['link'], level=logging.WARNING)
        return books

    def get_book_name(self, language: str = 'en', translation_id: Optional[str] = None, book_num: Any = 1) -> str:
        books = self.get_bible_books(language, translation_id)
        book = books.get(to_number(book_num)) or books[next(iter(books))]
        return book['name']

    # Verses

    def _parse_chapter(self, soup: BeautifulSoup) -> Dict[int, str]:
        """Verse number -> plain verse text for one chapter page."""
        parts: Dict[int, list] = {}
        for span in soup.select('span.v'):
            # Span ids look like v<book>-<chapter>-<verse>-<part>
            id_parts = span.get('id', '').split('-')
            if len(id_parts) < 3 or not id_parts[2].isdigit():
                continue
            text = MARKER_PATTERN.sub('', span.get_text())
            parts.setdefault(int(id_parts[2]), []).append(re.sub(r'\s+', ' ', text).strip())

        verses = {}
        for number, texts in parts.items():
            # The first token is the verse number label
            verses[number] = ' '.join(' '.join(texts).split(' ')[1:])
        return verses

    def get_chapter(self, language: str = 'en', translation_id: Optional[str] = None,
                    book_num: Any = 1, chapter_num: Any = 1) -> Dict[int, str]:
        language = self.validate_language(language)
        book_num = to_number(book_num)
        chapter_num = to_number(chapter_num)
        translation_id, translation = self.resolve_translation(language, translation_id)

        key = ('chapter', language, translation_id, book_num, chapter_num)
        return self.cache.get_or_load(key, lambda: self._load_chapter(translation, book_num, chapter_num))

    def _load_chapter(self, translation: Dict[str, str], book_num: int, chapter_num: int) -> Dict[int, str]:
        chapter_link = f"{translation['link'].replace('binav', 'b')}/{book_num}/{chapter_num}/"
        verses = self._parse_chapter(self._fetch_soup(chapter_link))
        if not verses:
            message = f"No verses found for book {book_num} chapter {chapter_num}"
            raise self._failure(NotFound(message), 'not_found', message, chapter_link, level=logging.WARNING)

        self.logger.info(f"Cached {len(verses)} verses of {chapter_link}")
        return verses

    def get_verse(self, language: str = 'en', translation_id: Optional[str] = None,
                  book_num: Any = 1, chapter_num: Any = 1, verse_num: Any = 1) -> str:
        """Plain text of one verse, without markers or verse number label."""
        verse_num = to_number(verse_num)
        verses = self.get_chapter(language, translation_id, book_num, chapter_num)

        verse = verses.get(verse_num)
        if not verse:
            raise self._failure(NotFound(f"Verse {verse_num} not found"), 'not_found',
                                f"Verse {verse_num} not in book {to_number(book_num)} chapter {to_number(chapter_num)}",
                                level=logging.WARNING)
        return verse
