#!/usr/bin/env python3
"""
Verse Canvas command line.

Usage:
  verse-canvas lang-code en
  verse-canvas translations en
  verse-canvas books en nwtsty
  verse-canvas verse en nwtsty 1 1 1                    # print verse text
  verse-canvas verse en nwtsty 1 1 1 --image verse.png  # render PNG
  verse-canvas verse en nwtsty 1 1 1 --data-url         # print data URL
"""

import os
import sys
import json
import logging
import argparse
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from verse_canvas.error_log_manager import error_log_manager
from verse_canvas.layout_engine import InvalidInput
from verse_canvas.service_manager import ServiceManager
from verse_canvas.verse_manager import VerseSourceError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='verse-canvas', description='Fetch Bible verses and render them as images.')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'INFO'),
                        help='logging level (default: %(default)s)')
    commands = parser.add_subparsers(dest='command', required=True)

    lang_code = commands.add_parser('lang-code', help='print the library code of a language')
    lang_code.add_argument('language')

    translations = commands.add_parser('translations', help='list translations of a language')
    translations.add_argument('language')

    books = commands.add_parser('books', help='list the books of a translation')
    books.add_argument('language')
    books.add_argument('translation', nargs='?')

    verse = commands.add_parser('verse', help='print or render a single verse')
    verse.add_argument('language')
    verse.add_argument('translation')
    verse.add_argument('book')
    verse.add_argument('chapter')
    verse.add_argument('verse')
    output = verse.add_mutually_exclusive_group()
    output.add_argument('--image', type=Path, help='write the rendered PNG to this path')
    output.add_argument('--data-url', action='store_true', help='print the rendered image as a data URL')

    return parser


def run(args: argparse.Namespace, service: ServiceManager) -> int:
    verses = service.verse_manager

    if args.command == 'lang-code':
        print(verses.get_language_code(args.language))
    elif args.command == 'translations':
        print(json.dumps(verses.get_translations(args.language), indent=2, ensure_ascii=False))
    elif args.command == 'books':
        print(json.dumps(verses.get_bible_books(args.language, args.translation), indent=2, ensure_ascii=False))
    elif args.image:
        image = service.get_bible_verse_image(args.language, args.translation, args.book,
                                              args.chapter, args.verse, 'data')
        args.image.write_bytes(image)
        print(f"Saved {args.image}")
    elif args.data_url:
        print(service.get_bible_verse_image(args.language, args.translation, args.book,
                                            args.chapter, args.verse, 'dataURL'))
    else:
        print(service.get_verse_text(args.language, args.translation, args.book, args.chapter, args.verse))
    return 0


def main(argv=None, service: ServiceManager = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    error_log_manager.configure()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    error_log_manager.install_handler()
    logger = logging.getLogger('verse_canvas.cli')

    try:
        return run(args, service or ServiceManager())
    except (VerseSourceError, InvalidInput) as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
