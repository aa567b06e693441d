# Services package.
#
# Each module exposes async functions holding the business logic and
# database access for one concern:
#
#   post_service     - listing, detail, create/update/delete for Post
#   tag_service      - tag get-or-create and post <-> tag mapping rows
#   count_service    - grouped like/comment counts for a page of posts
#   like_service     - idempotent like / unlike
#   comment_service  - top-level comments
#   user_service     - registration and lookup for User
#   blog_service     - one blog per user
#
# Every function takes an AsyncSession first and the acting user id
# explicitly; the router layer owns the transaction through ``get_db``.
