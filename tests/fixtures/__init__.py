from .trivia import StubHttp, StubResponse, make_raw_question

__all__ = ["StubHttp", "StubResponse", "make_raw_question"]
