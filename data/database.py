"""
Database Module for Meme Studio

This module handles all database connections and operations for Meme Studio.
It stores collected memes, generated memes and style guide snapshots in
SQL Server through pyodbc and exposes them through the async CorpusStore
interface. Blocking driver calls run in worker threads.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Sequence

import pyodbc

from config import settings
from data.models import Post, PostAnalysis, GeneratedMeme, StyleGuide
from utils.exceptions import StoreUnavailableError
from utils.helpers import load_json_list, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

POST_COLUMNS = """
    CAST(Meme_ID AS NVARCHAR(36)) AS Meme_ID, URL, Post_Text, Images, Author, Platform,
    Likes, Retweets, Views, Comments, Bookmarks, Collected_At,
    Topics, Humor_Type, Meme_Format, Template, Joke_Structure, Tone,
    Image_Analysis, Searchable_Text, Analyzed_At
"""

# Same columns read from the inserted pseudo-table of an OUTPUT clause
INSERTED_POST_COLUMNS = """
    CAST(inserted.Meme_ID AS NVARCHAR(36)) AS Meme_ID, inserted.URL, inserted.Post_Text,
    inserted.Images, inserted.Author, inserted.Platform, inserted.Likes, inserted.Retweets,
    inserted.Views, inserted.Comments, inserted.Bookmarks, inserted.Collected_At,
    inserted.Topics, inserted.Humor_Type, inserted.Meme_Format, inserted.Template,
    inserted.Joke_Structure, inserted.Tone, inserted.Image_Analysis,
    inserted.Searchable_Text, inserted.Analyzed_At
"""


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    """Store instants as naive UTC (DATETIME2 has no offset)."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _row_to_post(row: Dict[str, Any]) -> Post:
    return Post(
        id=str(row['Meme_ID']) if row.get('Meme_ID') is not None else None,
        url=row['URL'],
        text=row.get('Post_Text'),
        images=load_json_list(row.get('Images')),
        author=row.get('Author'),
        platform=row.get('Platform') or settings.DEFAULT_PLATFORM,
        likes=row.get('Likes') or 0,
        retweets=row.get('Retweets') or 0,
        views=row.get('Views') or 0,
        comments=row.get('Comments') or 0,
        bookmarks=row.get('Bookmarks') or 0,
        collected_at=_from_db_time(row.get('Collected_At')),
        topics=load_json_list(row.get('Topics')),
        humor_type=row.get('Humor_Type'),
        format=row.get('Meme_Format'),
        template=row.get('Template'),
        joke_structure=row.get('Joke_Structure'),
        tone=row.get('Tone'),
        image_analysis=row.get('Image_Analysis'),
        searchable_text=row.get('Searchable_Text'),
        analyzed_at=_from_db_time(row.get('Analyzed_At')),
    )


def _row_to_generated(row: Dict[str, Any]) -> GeneratedMeme:
    return GeneratedMeme(
        id=str(row['Generated_Meme_ID']),
        topic=row['Topic'],
        style=row.get('Style'),
        format=row.get('Meme_Format'),
        text_content=row.get('Text_Content') or "",
        image_url=row.get('Image_URL'),
        reference_meme_ids=load_json_list(row.get('Reference_Meme_IDs')),
        created_at=_from_db_time(row.get('Created_At')),
    )


def _row_to_style_guide(row: Dict[str, Any]) -> StyleGuide:
    try:
        content = json.loads(row.get('Content') or "{}")
    except ValueError:
        logger.warning(f"Style guide {row.get('Style_Guide_ID')} has unreadable content")
        content = {}
    return StyleGuide(
        id=str(row['Style_Guide_ID']),
        guide_type=row['Guide_Type'],
        content=content,
        meme_count=row.get('Meme_Count') or 0,
        topics=load_json_list(row.get('Topics')),
        humor_patterns=load_json_list(row.get('Humor_Patterns')),
        created_at=_from_db_time(row.get('Created_At')),
    )


class DatabaseConnection:
    """Database connection manager for Meme Studio.

    A fresh connection is opened for every statement so that calls made
    from different worker threads never share a pyodbc connection.
    """

    def __init__(self, connection_string: Optional[str] = None):
        """Initialize the database connection settings."""
        self.connection_string = connection_string if connection_string is not None else settings.DB_CONNECTION_STRING

    def connect(self) -> "pyodbc.Connection":
        """
        Establish a connection to the database.

        Returns:
            pyodbc.Connection: An open connection.

        Raises:
            StoreUnavailableError: If the connection cannot be established.
        """
        if not self.connection_string:
            raise StoreUnavailableError("Database connection string is not configured")
        try:
            conn = pyodbc.connect(self.connection_string)
            conn.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            return conn
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to database: {e}")
            raise StoreUnavailableError(f"Failed to connect to database: {e}") from e

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Execute a SQL statement and return any result rows.

        Args:
            query: The SQL statement to execute.
            params: Query parameters (optional).

        Returns:
            List[Dict]: Result rows as dictionaries (empty for statements without results).

        Raises:
            StoreUnavailableError: If the statement fails.
        """
        conn = self.connect()
        try:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            results: List[Dict[str, Any]] = []
            if cursor.description:
                columns = [column[0] for column in cursor.description]
                results = [dict(zip(columns, row)) for row in cursor.fetchall()]
            conn.commit()
            return results

        except pyodbc.Error as e:
            logger.error(f"Error executing query: {e}")
            try:
                conn.rollback()
            except pyodbc.Error:
                logger.debug("Rollback failed after query error")
            raise StoreUnavailableError(f"Database query failed: {e}") from e
        finally:
            try:
                conn.close()
            except pyodbc.Error as e:
                logger.error(f"Error closing database connection: {e}")


class SqlCorpusStore:
    """CorpusStore implementation backed by SQL Server."""

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or DatabaseConnection()

    async def _run(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.db.execute_query, query, params)

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    async def upsert_post(self, post: Post) -> Post:
        """Insert or refresh a post keyed on its URL."""
        query = f"""
        MERGE [dbo].[Memes] WITH (HOLDLOCK) AS target
        USING (SELECT ? AS URL) AS source
        ON target.URL = source.URL
        WHEN MATCHED THEN UPDATE SET
            Post_Text = ?, Images = ?, Author = ?, Platform = ?,
            Likes = ?, Retweets = ?, Views = ?, Comments = ?, Bookmarks = ?,
            Collected_At = ?
        WHEN NOT MATCHED THEN INSERT
            (URL, Post_Text, Images, Author, Platform,
             Likes, Retweets, Views, Comments, Bookmarks, Collected_At)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        OUTPUT {INSERTED_POST_COLUMNS};
        """
        collected_at = _to_db_time(post.collected_at or utc_now())
        fields = (
            post.text, json.dumps(post.images), post.author, post.platform,
            post.likes, post.retweets, post.views, post.comments, post.bookmarks,
            collected_at,
        )
        params = (post.url,) + fields + (post.url,) + fields
        rows = await self._run(query, params)
        if not rows:
            raise StoreUnavailableError(f"Upsert returned no row for {post.url}")
        stored = _row_to_post(rows[0])
        logger.info(f"Saved meme {stored.id} ({post.url})")
        return stored

    async def get_posts_by_ids(self, post_ids: Sequence[str]) -> List[Post]:
        if not post_ids:
            return []
        # Malformed ids become NULL and simply match nothing
        placeholders = ", ".join("TRY_CAST(? AS UNIQUEIDENTIFIER)" for _ in post_ids)
        query = f"SELECT {POST_COLUMNS} FROM [dbo].[Memes] WHERE Meme_ID IN ({placeholders})"
        rows = await self._run(query, tuple(post_ids))
        return [_row_to_post(row) for row in rows]

    async def list_posts(self, limit: int = 50, offset: int = 0, analyzed: Optional[bool] = None) -> List[Post]:
        where = ""
        if analyzed is True:
            where = "WHERE Analyzed_At IS NOT NULL"
        elif analyzed is False:
            where = "WHERE Analyzed_At IS NULL"
        query = f"""
        SELECT {POST_COLUMNS} FROM [dbo].[Memes]
        {where}
        ORDER BY Collected_At DESC
        OFFSET ? ROWS FETCH NEXT ? ROWS ONLY
        """
        rows = await self._run(query, (offset, limit))
        return [_row_to_post(row) for row in rows]

    async def list_analyzed_posts(self, since: Optional[datetime] = None, limit: Optional[int] = None) -> List[Post]:
        top = "TOP (?)" if limit is not None else ""
        params: List[Any] = [limit] if limit is not None else []
        where = "WHERE Analyzed_At IS NOT NULL"
        if since is not None:
            where += " AND Collected_At >= ?"
            params.append(_to_db_time(since))
        query = f"""
        SELECT {top} {POST_COLUMNS} FROM [dbo].[Memes]
        {where}
        ORDER BY Collected_At DESC
        """
        rows = await self._run(query, tuple(params))
        return [_row_to_post(row) for row in rows]

    async def list_recent_posts(self, limit: int) -> List[Post]:
        """Most recently collected posts, analyzed or not."""
        return await self.list_posts(limit=limit, offset=0, analyzed=None)

    async def save_analysis(self, post_id: str, analysis: PostAnalysis) -> None:
        query = """
        UPDATE [dbo].[Memes]
        SET Topics = ?, Humor_Type = ?, Meme_Format = ?, Template = ?,
            Joke_Structure = ?, Tone = ?, Image_Analysis = ?,
            Searchable_Text = ?, Analyzed_At = ?
        WHERE Meme_ID = ?
        """
        params = (
            json.dumps(analysis.topics), analysis.humor_type, analysis.format, analysis.template,
            analysis.joke_structure, analysis.tone, analysis.image_analysis,
            analysis.searchable_text, _to_db_time(analysis.analyzed_at), post_id,
        )
        await self._run(query, params)
        logger.info(f"Stored analysis for meme {post_id}")

    # -------------------------------------------------------------------------
    # Generated memes
    # -------------------------------------------------------------------------

    async def insert_generated_meme(self, meme: GeneratedMeme) -> GeneratedMeme:
        query = """
        INSERT INTO [dbo].[Generated_Memes]
            (Topic, Style, Meme_Format, Text_Content, Image_URL, Reference_Meme_IDs, Created_At)
        OUTPUT CAST(inserted.Generated_Meme_ID AS NVARCHAR(36)) AS Generated_Meme_ID,
               inserted.Topic, inserted.Style, inserted.Meme_Format, inserted.Text_Content,
               inserted.Image_URL, inserted.Reference_Meme_IDs, inserted.Created_At
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            meme.topic, meme.style, meme.format, meme.text_content, meme.image_url,
            json.dumps(meme.reference_meme_ids), _to_db_time(meme.created_at or utc_now()),
        )
        rows = await self._run(query, params)
        if not rows:
            raise StoreUnavailableError("Insert into Generated_Memes returned no row")
        return _row_to_generated(rows[0])

    async def list_generated_memes(self, limit: int = 20, topic: Optional[str] = None) -> List[GeneratedMeme]:
        params: List[Any] = [limit]
        where = ""
        if topic:
            where = "WHERE Topic = ?"
            params.append(topic)
        query = f"""
        SELECT TOP (?) CAST(Generated_Meme_ID AS NVARCHAR(36)) AS Generated_Meme_ID,
               Topic, Style, Meme_Format, Text_Content, Image_URL, Reference_Meme_IDs, Created_At
        FROM [dbo].[Generated_Memes]
        {where}
        ORDER BY Created_At DESC
        """
        rows = await self._run(query, tuple(params))
        return [_row_to_generated(row) for row in rows]

    # -------------------------------------------------------------------------
    # Style guides
    # -------------------------------------------------------------------------

    async def insert_style_guide(self, guide: StyleGuide) -> StyleGuide:
        query = """
        INSERT INTO [dbo].[Style_Guides]
            (Guide_Type, Content, Meme_Count, Topics, Humor_Patterns, Created_At)
        OUTPUT CAST(inserted.Style_Guide_ID AS NVARCHAR(36)) AS Style_Guide_ID,
               inserted.Guide_Type, inserted.Content, inserted.Meme_Count,
               inserted.Topics, inserted.Humor_Patterns, inserted.Created_At
        VALUES (?, ?, ?, ?, ?, ?)
        """
        params = (
            guide.guide_type, json.dumps(guide.content), guide.meme_count,
            json.dumps(guide.topics), json.dumps(guide.humor_patterns),
            _to_db_time(guide.created_at or utc_now()),
        )
        rows = await self._run(query, params)
        if not rows:
            raise StoreUnavailableError("Insert into Style_Guides returned no row")
        return _row_to_style_guide(rows[0])

    async def get_latest_style_guide(self, guide_type: str) -> Optional[StyleGuide]:
        query = """
        SELECT TOP (1) CAST(Style_Guide_ID AS NVARCHAR(36)) AS Style_Guide_ID,
               Guide_Type, Content, Meme_Count, Topics, Humor_Patterns, Created_At
        FROM [dbo].[Style_Guides]
        WHERE Guide_Type = ?
        ORDER BY Created_At DESC
        """
        rows = await self._run(query, (guide_type,))
        return _row_to_style_guide(rows[0]) if rows else None
