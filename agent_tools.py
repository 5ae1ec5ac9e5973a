"""Optional tools for the agent: web search and TMDB movie lookup."""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.tools import BaseTool, tool

from config import TAVILY_API_KEY, TMDB_API_KEY

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"


async def tmdb_request(endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """GET a TMDB endpoint with the configured API key."""
    async with httpx.AsyncClient(base_url=TMDB_BASE_URL, timeout=10.0) as client:
        response = await client.get(endpoint, params={"api_key": TMDB_API_KEY, **(params or {})})
        response.raise_for_status()
        return response.json()


def format_movie(movie: Dict[str, Any]) -> Dict[str, Any]:
    vote_average = movie.get("vote_average")
    poster_path = movie.get("poster_path")
    return {
        "id": movie.get("id"),
        "title": movie.get("title") or movie.get("name"),
        "overview": movie.get("overview"),
        "releaseDate": movie.get("release_date") or movie.get("first_air_date"),
        "rating": f"{vote_average:.1f}" if vote_average else "N/A",
        "voteCount": movie.get("vote_count"),
        "posterUrl": f"{TMDB_IMAGE_BASE}{poster_path}" if poster_path else None,
        "language": movie.get("original_language"),
    }


@tool
async def search_movies(query: str) -> str:
    """Search for movies by title. Use this when users ask about specific movies or need movie information. Returns the top 5 matches."""
    logger.info(f"Searching movies for: {query}")
    try:
        data = await tmdb_request("/search/movie", {"query": query, "include_adult": False, "language": "en-US", "page": 1})
    except httpx.HTTPError as e:
        logger.error(f"TMDB API error: {e}")
        return json.dumps({"success": False, "error": "Failed to search movies. Please try again."})

    results = data.get("results") or []
    if not results:
        return json.dumps({"success": False, "message": f'No movies found for "{query}"'})

    return json.dumps({
        "success": True,
        "searchTerm": query,
        "totalResults": data.get("total_results"),
        "movies": [format_movie(movie) for movie in results[:5]],
    })


@tool
async def get_movie_details(movie_id: int) -> str:
    """Get detailed information (runtime, genres, cast) about a movie by its TMDB id."""
    try:
        data = await tmdb_request(f"/movie/{movie_id}", {"append_to_response": "credits", "language": "en-US"})
    except httpx.HTTPError as e:
        logger.error(f"TMDB API error: {e}")
        return json.dumps({"success": False, "error": "Failed to fetch movie details. Please try again."})

    details = format_movie(data)
    details.update({
        "runtime": data.get("runtime"),
        "genres": [genre.get("name") for genre in data.get("genres", [])],
        "tagline": data.get("tagline"),
        "cast": [member.get("name") for member in data.get("credits", {}).get("cast", [])[:5]],
    })
    return json.dumps({"success": True, "movie": details})


@tool
async def get_trending_movies(time_window: str = "week") -> str:
    """Get currently trending movies. ``time_window`` is "day" or "week"."""
    if time_window not in ("day", "week"):
        time_window = "week"
    try:
        data = await tmdb_request(f"/trending/movie/{time_window}")
    except httpx.HTTPError as e:
        logger.error(f"TMDB API error: {e}")
        return json.dumps({"success": False, "error": "Failed to fetch trending movies. Please try again."})

    return json.dumps({
        "success": True,
        "timeWindow": time_window,
        "movies": [format_movie(movie) for movie in (data.get("results") or [])[:10]],
    })


def get_agent_tools() -> List[BaseTool]:
    """Tools enabled by the API keys present in the environment."""
    tools: List[BaseTool] = []

    if TAVILY_API_KEY:
        from langchain_tavily import TavilySearch
        tools.append(TavilySearch(max_results=3, topic="general"))

    if TMDB_API_KEY:
        tools.extend([search_movies, get_movie_details, get_trending_movies])

    logger.info(f"Agent tools enabled: {[t.name for t in tools]}")
    return tools
