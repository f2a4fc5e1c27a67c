import logging
from typing import Optional

import httpx

from lemmy_blog.infrastructure.external.github_client import GitHubContentsClient
from lemmy_blog.infrastructure.storage.markdown_codec import dump_markdown
from lemmy_blog.modules.posts.schemas import Post

logger = logging.getLogger(__name__)


class GitHubMirror:
    """
    将新帖子镜像为仓库中的 MDX 文件

    尽力而为：任何失败只记录日志并返回 False，不影响帖子创建
    """

    def __init__(self, client: GitHubContentsClient, posts_path: str = "posts"):
        self._client = client
        self._posts_path = posts_path.strip("/")

    @staticmethod
    def render(post: Post) -> str:
        """生成带 frontmatter 的文件内容"""
        metadata = {
            "type": "Post",
            "title": post.title,
            "description": post.description,
            "date": post.date,
            "author": post.author,
            "tags": list(post.tags),
            "draft": post.draft,
        }
        return dump_markdown(metadata, post.content)

    async def mirror_post(self, post: Post) -> bool:
        path = f"{self._posts_path}/{post.slug}.mdx"
        author: Optional[dict] = None
        if post.author_info is not None:
            author = {"name": post.author_info.username, "email": post.author}
        try:
            await self._client.put_file(
                path,
                self.render(post),
                message=f"Add new blog post: {post.title}",
                author=author,
            )
        except httpx.HTTPError as e:
            logger.warning(f"帖子镜像到 GitHub 失败 (slug={post.slug}): {e}")
            return False
        logger.info(f"帖子已镜像到 GitHub: {path}")
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
