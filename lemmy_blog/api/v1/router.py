from fastapi import APIRouter
from lemmy_blog.api.v1.endpoints import auth, posts, users

# 创建主路由
router = APIRouter()

router.include_router(auth.router)
router.include_router(posts.router)
router.include_router(users.router)
