"""
Ties verse retrieval to image generation.
"""

import logging
from typing import Any, Dict, Optional, Union

from verse_canvas.error_log_manager import error_log_manager
from verse_canvas.image_generator import ImageGenerator
from verse_canvas.layout_engine import InvalidInput
from verse_canvas.verse_manager import VerseManager, to_number


class ServiceManager:
    def __init__(self, verse_manager: Optional[VerseManager] = None,
                 image_generator: Optional[ImageGenerator] = None):
        self.logger = logging.getLogger(__name__)
        self.verse_manager = verse_manager or VerseManager()
        self.image_generator = image_generator or ImageGenerator()

    def get_verse_text(self, language: str = 'en', translation_id: Optional[str] = None,
                       book_num: Any = 1, chapter_num: Any = 1, verse_num: Any = 1) -> str:
        return self.verse_manager.get_verse(language, translation_id, book_num, chapter_num, verse_num)

    def get_bible_verse_image(self, language: str = 'en', translation_id: Optional[str] = None,
                              book_num: Any = 1, chapter_num: Any = 1, verse_num: Any = 1,
                              output_type: str = 'data') -> Union[bytes, str]:
        """Render one verse with its '<Book> <chapter>:<verse>' caption.

        Returns PNG bytes for output_type 'data', a data URL for 'dataURL'.
        """
        language = self.verse_manager.validate_language(language)

        verse = self.verse_manager.get_verse(language, translation_id, book_num, chapter_num, verse_num)
        book_name = self.verse_manager.get_book_name(language, translation_id, book_num)
        caption = f"{book_name} {to_number(chapter_num)}:{to_number(verse_num)}"

        try:
            image = self.image_generator.render(verse, caption, output_type)
        except InvalidInput as e:
            error_log_manager.log_error('image_generator', 'invalid_input', str(e),
                                        details={'caption': caption}, exception=e)
            self.logger.warning(f"Could not lay out {caption}: {e}")
            raise

        self.logger.info(f"Generated image for {caption} ({language}, {output_type})")
        return image

    def get_status(self) -> Dict[str, Any]:
        return {
            'display': self.image_generator.get_display_info(),
            'cache': self.verse_manager.cache.get_stats(),
            'errors': error_log_manager.get_daily_error_summary(),
        }
