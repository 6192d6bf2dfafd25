"""Deletions that span Firestore and the image host."""

from typing import Any, Dict, List, Optional

from editaja.crud.favorite import FavoriteCRUD
from editaja.crud.generation import GenerationCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.crud.user import UserCRUD
from editaja.services.image_host import ImageHostClient
from editaja.utils.exceptions import ImageHostError, ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)


def generation_image_urls(generation: Dict[str, Any]) -> List[str]:
    urls = [generation.get("originalImageUrl")] + list(generation.get("generatedImageUrls") or [])
    return [url for url in urls if url]


class UserDataService:
    """Removes users and generations together with their hosted images."""

    def __init__(self, db, image_host: Optional[ImageHostClient] = None):
        self.db = db
        self.image_host = image_host
        self.users = UserCRUD(db)
        self.generations = GenerationCRUD(db)
        self.favorites = FavoriteCRUD(db)
        self.tokens = TokenCRUD(db)

    async def _delete_hosted_images(self, generation: Dict[str, Any]) -> int:
        """
        Delete a generation's images from the image host.

        Only URLs on the image host are touched; a failed image delete is
        logged and does not stop the document delete.
        """
        if self.image_host is None:
            return 0
        deleted = 0
        for url in generation_image_urls(generation):
            if not self.image_host.owns_url(url):
                continue
            try:
                await self.image_host.delete_image(url, generation.get("userId"))
                deleted += 1
            except (ImageHostError, ValidationError) as e:
                logger.warning(f"Could not delete hosted image {url}: {e.message}")
        return deleted

    async def delete_generation(self, generation: Dict[str, Any]) -> Dict[str, Any]:
        images_deleted = await self._delete_hosted_images(generation)
        self.generations.delete(generation["id"])
        logger.info(f"Generation {generation['id']} deleted ({images_deleted} hosted image(s))")
        return {"id": generation["id"], "imagesDeleted": images_deleted}

    async def delete_user(self, uid: str) -> Dict[str, Any]:
        """
        Delete every trace of a user: favorites, generations, tokens, the
        image host folder, the beta-tester entry and the user document.
        """
        favorites = self.favorites.delete_user_favorites(uid)
        generations = self.generations.delete_user_generations(uid)
        self.tokens.delete(uid)

        folders: Dict[str, Any] = {"deleted_folders": [], "deleted_files": []}
        if self.image_host is not None:
            try:
                folders = await self.image_host.delete_user_folder(uid)
            except ImageHostError as e:
                logger.warning(f"Could not delete image host folder for {uid}: {e.message}")

        self.db.collection("betaTesters").document(uid).delete()
        self.users.delete(uid)
        logger.info(f"User {uid} deleted: {len(generations)} generations, {favorites} favorites")
        return {
            "favoritesDeleted": favorites,
            "generationsDeleted": len(generations),
            "deletedFolders": folders.get("deleted_folders", []),
            "deletedFiles": folders.get("deleted_files", []),
        }
