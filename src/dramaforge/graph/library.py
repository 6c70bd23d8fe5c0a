"""Character library: portraits saved for reuse across dramas."""

from __future__ import annotations

from dramaforge.config import get_logger
from dramaforge.exceptions import NotFoundError
from dramaforge.graph.repository import ContentGraphRepository
from dramaforge.models.graph import Character, RecordId
from dramaforge.models.library import CharacterLibraryItem
from dramaforge.storage import (
    KeyValueStore,
    Page,
    StorageCollection,
    StorageKeys,
    generate_id,
    paginate,
)

logger = get_logger(__name__)


class CharacterLibrary:
    """CRUD over library items plus copying portraits to and from characters.

    Applying an item to a character goes through the content graph
    repository, so episode replicas pick up the new image in the same write.
    """

    def __init__(self, store: KeyValueStore, repository: ContentGraphRepository) -> None:
        self.items = StorageCollection(store, StorageKeys.CHARACTER_LIBRARY, CharacterLibraryItem)
        self.repository = repository

    def list_items(
        self,
        category: str | None = None,
        source_type: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[CharacterLibraryItem]:
        """Filter library items, newest first, and return one page.

        ``keyword`` matches name or description, case-insensitively.
        """
        items = self.items.get_all()
        if category:
            items = [i for i in items if i.category == category]
        if source_type:
            items = [i for i in items if i.source_type == source_type]
        if keyword:
            needle = keyword.lower()
            items = [
                i
                for i in items
                if needle in i.name.lower()
                or (i.description and needle in i.description.lower())
            ]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return paginate(items, page, page_size)

    def create_item(
        self,
        name: str,
        image_url: str,
        category: str | None = None,
        description: str | None = None,
        tags: str | None = None,
        source_type: str | None = None,
    ) -> CharacterLibraryItem:
        item = CharacterLibraryItem(
            id=generate_id("lib"),
            name=name,
            image_url=image_url,
            category=category,
            description=description,
            tags=tags,
            source_type=source_type or "manual",
        )
        self.items.add(item)
        logger.info("Added library item", item_id=item.id, name=name)
        return item

    def get_item(self, item_id: str) -> CharacterLibraryItem:
        item = self.items.get_by_id(item_id)
        if item is None:
            raise NotFoundError("Library item", item_id)
        return item

    def delete_item(self, item_id: str) -> bool:
        return self.items.delete(item_id)

    def set_character_image(self, character_id: RecordId, image_url: str) -> Character:
        """Point a character at an uploaded portrait."""
        return self.repository.update_character(character_id, {"image_url": image_url})

    def apply_to_character(self, character_id: RecordId, item_id: str) -> Character:
        """Copy a library item's portrait onto a character.

        Raises:
            NotFoundError: The library item or the character does not exist.
        """
        item = self.get_item(item_id)
        character = self.set_character_image(character_id, item.image_url)
        logger.info("Applied library item", item_id=item_id, character_id=character_id)
        return character

    def add_from_character(
        self, character_id: RecordId, category: str | None = None
    ) -> CharacterLibraryItem:
        """Save a character's name, description and portrait as a library item."""
        found = self.repository.find_character(character_id)
        if found is None:
            raise NotFoundError("Character", character_id)
        _, character = found
        return self.create_item(
            name=character.name,
            image_url=character.image_url or "",
            category=category,
            description=character.description,
            source_type="character",
        )
