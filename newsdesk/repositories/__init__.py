# Repositories package.
#
# ``base.Repository`` is the uniform data-access contract (CRUD, predicate
# queries, 1-indexed pagination) parameterised over one ORM model.  Each
# module specialises it for a single entity with extra query methods:
#
#   accounts   : AccountRepository  (by email, by role, authorship)
#   articles   : ArticleRepository  (feeds, search, date range, tag links)
#   categories : CategoryRepository (tree queries, article guard)
#   tags       : TagRepository      (by name, usage counts)
#
# Repositories flush but never commit; the service layer owns the unit of
# work because change notifications must follow the commit.
from newsdesk.repositories.accounts import AccountRepository
from newsdesk.repositories.articles import ArticleRepository
from newsdesk.repositories.base import Repository
from newsdesk.repositories.categories import CategoryRepository
from newsdesk.repositories.tags import TagRepository

__all__ = [
    "AccountRepository",
    "ArticleRepository",
    "CategoryRepository",
    "Repository",
    "TagRepository",
]
