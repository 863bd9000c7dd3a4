"""Post authoring: create, edit and delete posts and their comments."""

import logging
from typing import Optional

from campus.constants.search import ALL_SCOPES
from campus.enrichment.service import ContentEnricher
from campus.errors import Forbidden, NotFound, ValidationError
from campus.notifications.schemas import NotificationEvent, NotificationType
from campus.notifications.service import NotificationDispatcher
from campus.posts.models import Comment, Document
from campus.posts.schemas import CommentCreate, CommentUpdate, PostCreate, PostUpdate
from campus.posts.store import PostStore

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_CHARS = 50


def comment_notification_content(body: str) -> str:
    preview = body[:COMMENT_PREVIEW_CHARS]
    if len(body) > COMMENT_PREVIEW_CHARS:
        preview += "..."
    return f'commented on your post: "{preview}"'


class PostService:
    """Authoring flows around the post store.

    New posts are enriched before they are saved; an edit that changes the
    title or body regenerates the enrichment so the embedding always matches
    the current text.
    """

    def __init__(
        self,
        store: PostStore,
        enricher: ContentEnricher,
        dispatcher: Optional[NotificationDispatcher] = None,
    ) -> None:
        self._store = store
        self._enricher = enricher
        self._dispatcher = dispatcher

    def get(self, post_id: str) -> Document:
        document = self._store.get(post_id)
        if document is None:
            raise NotFound(f"Post {post_id} not found")
        return document

    def list_posts(self, scope: Optional[str] = None, limit: int = 20) -> list[Document]:
        """Newest posts, optionally within one department ("General" means all)."""
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        if scope == ALL_SCOPES:
            scope = None
        return self._store.list_posts(scope, limit)

    async def create(self, author_id: str, request: PostCreate) -> Document:
        """Create an enriched post.

        Raises:
            NotFound: If the author does not exist.
        """
        if self._store.get_user(author_id) is None:
            raise NotFound(f"User {author_id} not found")

        title = request.title.strip()
        body = request.content.strip()
        if not title or not body:
            raise ValidationError("Title and content are required")

        enrichment = await self._enricher.enrich(title, body)
        document = self._store.create_post(
            author_id=author_id,
            title=title,
            body=body,
            scope=request.department.value,
            embedding=enrichment.embedding,
            summary=enrichment.summary,
            sentiment=enrichment.sentiment,
            tags=enrichment.tags,
        )
        logger.info(
            "Post %s created by %s (embedded: %s)", document.id, author_id, document.has_embedding
        )
        return document

    async def update(self, post_id: str, user_id: str, request: PostUpdate) -> Document:
        """Edit a post. Only its author may edit it.

        Raises:
            NotFound: If the post does not exist.
            Forbidden: If user_id is not the author.
        """
        document = self.get(post_id)
        if document.author_id != user_id:
            raise Forbidden("Not authorized to update this post")

        text_changed = False
        if request.title is not None and request.title.strip() != document.title:
            document.title = request.title.strip()
            text_changed = True
        if request.content is not None and request.content.strip() != document.body:
            document.body = request.content.strip()
            text_changed = True
        if request.department is not None:
            document.scope = request.department.value

        if text_changed:
            enrichment = await self._enricher.enrich(document.title, document.body)
            # A stale embedding would rank the post by its old text
            document.embedding = enrichment.embedding
            document.summary = enrichment.summary
            document.sentiment = enrichment.sentiment
            document.tags = enrichment.tags

        return self._store.update_post(document)

    def delete(self, post_id: str, user_id: str) -> None:
        """Delete a post and everything attached to it. Only its author may delete it.

        Raises:
            NotFound: If the post does not exist.
            Forbidden: If user_id is not the author.
        """
        document = self.get(post_id)
        if document.author_id != user_id:
            raise Forbidden("Not authorized to delete this post")
        self._store.delete_post(post_id)
        logger.info("Post %s deleted by its author", post_id)

    async def add_comment(self, post_id: str, user_id: str, request: CommentCreate) -> Comment:
        """Comment on a post and notify its author.

        Raises:
            NotFound: If the post or the commenter does not exist.
        """
        document = self.get(post_id)
        if self._store.get_user(user_id) is None:
            raise NotFound(f"User {user_id} not found")
        body = request.content.strip()
        if not body:
            raise ValidationError("Content is required")

        comment = self._store.add_comment(post_id, user_id, body)

        if self._dispatcher is not None and document.author_id != user_id:
            await self._dispatcher.notify(
                document.author_id,
                NotificationEvent(
                    type=NotificationType.COMMENT,
                    content=comment_notification_content(body),
                    sender_id=user_id,
                    post_id=post_id,
                    comment_id=comment.id,
                ),
            )
        return comment

    def get_comment(self, comment_id: str) -> Comment:
        comment = self._store.get_comment(comment_id)
        if comment is None:
            raise NotFound(f"Comment {comment_id} not found")
        return comment

    def list_comments(self, post_id: str, limit: int = 50) -> list[Comment]:
        """A post's comments, oldest first.

        Raises:
            NotFound: If the post does not exist.
        """
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        if not self._store.exists(post_id):
            raise NotFound(f"Post {post_id} not found")
        return self._store.list_comments(post_id, limit)

    def update_comment(self, comment_id: str, user_id: str, request: CommentUpdate) -> Comment:
        """Edit a comment. Only its author may edit it.

        Raises:
            NotFound: If the comment does not exist.
            Forbidden: If user_id is not the author.
        """
        comment = self.get_comment(comment_id)
        if comment.author_id != user_id:
            raise Forbidden("Not authorized to update this comment")
        body = request.content.strip()
        if not body:
            raise ValidationError("Content is required")
        updated = self._store.update_comment(comment_id, body)
        if updated is None:
            raise NotFound(f"Comment {comment_id} not found")
        return updated

    def delete_comment(self, comment_id: str, user_id: str) -> None:
        """Delete a comment and its votes. Only its author may delete it.

        Raises:
            NotFound: If the comment does not exist.
            Forbidden: If user_id is not the author.
        """
        comment = self.get_comment(comment_id)
        if comment.author_id != user_id:
            raise Forbidden("Not authorized to delete this comment")
        self._store.delete_comment(comment_id)
        logger.info("Comment %s on post %s deleted by its author", comment_id, comment.post_id)
