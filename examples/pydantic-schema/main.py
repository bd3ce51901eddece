from __future__ import annotations
import asyncio

from pydantic import BaseModel

from robust_fetch import ErrorKind, LinearRetry, robust_fetch
from robust_fetch.contrib.pydantic_schema import PydanticSchema


class Slideshow(BaseModel):
    author: str
    title: str
    slides: list[dict]


class Envelope(BaseModel):
    slideshow: Slideshow


async def main():
    res = await robust_fetch(
        "https://httpbin.org/json",
        timeout=3.0,
        retry=LinearRetry(attempts=2, delay=0.5),
        schema=PydanticSchema(Envelope),
    )
    if res.is_ok:
        doc: Envelope = res.value.json()
        print("title:", doc.slideshow.title, "slides:", len(doc.slideshow.slides))
    elif res.error.kind is ErrorKind.VALIDATION_REJECTED:
        for issue in res.error.issues:
            print("invalid:", issue.dotted_path(), issue.message)
    else:
        print("failed:", res.error)


if __name__ == "__main__":
    asyncio.run(main())
