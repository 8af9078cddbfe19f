"""Question/answer projection of a topic's posts.

Forums in Q&A mode render a topic as one question, a ranked list of
answers, and a flat list of comments under each of them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, Field

from forumkit.domain.models import NO_PARENT, Post, Topic


class QAIntegrityError(ValueError):
    """A topic does not have exactly one first-in-topic post."""

    def __init__(self, topic_id: int, found: int) -> None:
        self.topic_id = topic_id
        self.found = found
        super().__init__(
            f"Expected exactly one post marked first-in-topic for topic {topic_id}, found {found}."
        )


class PostWithChildren(BaseModel):
    """A question or answer with its comments."""

    post: Post
    children: list[Post] = Field(default_factory=list)
    last_read_time: datetime | None = None


class QATopic(BaseModel):
    """The projected question and its ordered answers."""

    topic: Topic
    question: PostWithChildren
    answers: list[PostWithChildren] = Field(default_factory=list)


def _comments_on(posts: Sequence[Post], parent_id: int) -> list[Post]:
    return [p for p in posts if p.parent_post_id == parent_id]


def map_topic_for_qa(
    topic: Topic,
    posts: Sequence[Post],
    last_read_time: datetime | None = None,
) -> QATopic:
    """Project *posts* of *topic* into a question with ranked answers.

    Answers are the top-level posts other than the question, by votes
    descending then post time descending. The accepted answer, when it is
    one of them, is moved to the front.

    Raises:
        QAIntegrityError: If zero or several posts are first-in-topic.
    """
    firsts = [p for p in posts if p.is_first_in_topic]
    if len(firsts) != 1:
        raise QAIntegrityError(topic.topic_id, len(firsts))
    question_post = firsts[0]

    question = PostWithChildren(
        post=question_post,
        children=_comments_on(posts, question_post.post_id),
        last_read_time=last_read_time,
    )

    answers = sorted(
        (p for p in posts if not p.is_first_in_topic and p.parent_post_id == NO_PARENT),
        key=lambda p: (p.votes, p.post_time),
        reverse=True,
    )
    if topic.answer_post_id is not None:
        accepted = next((p for p in answers if p.post_id == topic.answer_post_id), None)
        if accepted is not None:
            answers.remove(accepted)
            answers.insert(0, accepted)

    return QATopic(
        topic=topic,
        question=question,
        answers=[
            PostWithChildren(
                post=answer,
                children=_comments_on(posts, answer.post_id),
                last_read_time=last_read_time,
            )
            for answer in answers
        ],
    )
