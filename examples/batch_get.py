"""
AWS DynamoDB Movies Table: Batch Get Example

Following the BatchGetItem examples of the official AWS DynamoDB guide:
https://docs.aws.amazon.com/amazondynamodb/latest/developerguide/example_dynamodb_BatchGetItem_section.html
"""

import logging
import threading
from typing import Any

from pydantic import BaseModel

from dynabatch import ItemNotFoundError, Key, Keys, SortKey, Table

logging.basicConfig(level=logging.INFO)


class Movie(BaseModel):
    """Movie model with composite key (year + title)"""

    year: int = Key()
    title: str = SortKey()
    plot: str | None = None
    rating: float | None = None
    info: dict[str, Any] | None = None


movies = Table("Movies")

# Fetch several movies in one request, decoded into Movie
batch = movies.batch_for(Movie).get(
    (2013, "Rush"),
    (2013, "Prisoners"),
    (2014, "Interstellar"),
)
for movie in batch:
    print(f"Found: {movie.title} ({movie.year}) - {movie.rating}/10")

# Explicit key names, projection and strongly consistent reads; plain dicts come back
titles = (
    movies.batch("year", "title")
    .get(Keys(2013, "Rush"))
    .and_(Keys(2014, "Interstellar"))
    .project("title", "info.directors[0]")
    .consistent()
    .all()
)
print(f"\nTitles: {titles}")

# Step through results; errors are read from `err` instead of raised
it = movies.batch_for(Movie).get((1999, "The Matrix")).iter()
while it.next():
    print(f"  - {it.item.title}")
if isinstance(it.err, ItemNotFoundError):
    print("\nNo such movie")

# Bound the wait on throttled tables with a cancellation event
cancel = threading.Event()
threading.Timer(5.0, cancel.set).start()
try:
    movies.batch_for(Movie).get((2013, "Rush")).all(cancel=cancel)
finally:
    cancel.set()
