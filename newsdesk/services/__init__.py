# Services package.
#
# Each module exposes a focused set of async functions that hold the
# business rules for a single aggregate:
#
#   account_service  : accounts, login, password changes
#   category_service : category tree, active flag defaulting, delete guard
#   tag_service      : tags and article/tag association reconciliation
#   article_service  : news articles, publishing, feeds, reports
#
# All service functions accept an AsyncSession as their first argument.
# Reads never commit.  Every successful mutation commits its own unit of
# work and then publishes exactly one change signal (see ``common``), so
# listeners only ever hear about committed data.
