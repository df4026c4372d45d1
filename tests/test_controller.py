"""
Tests for the session controller and its ChatView notifications.
"""

import asyncio

from docchat.controller import (
    STYLE_BUSY,
    STYLE_ERROR,
    STYLE_GENERATING,
    STYLE_LOADING,
    STYLE_READY,
    STYLE_STOPPED,
    SessionController,
)
from docchat.generator import GenerationSession
from docchat.retriever import RetrievalEngine

from conftest import FakeBackend, FakeBackendFactory, FakeDocument, FakeEmbedder, RecordingView


def make_controller(*backends, failures=0, embedder=None, top_k=3):
    factory = FakeBackendFactory(*backends, failures=failures)
    engine = RetrievalEngine(embedder or FakeEmbedder())
    session = GenerationSession(factory, "fake-model")
    view = RecordingView()
    return SessionController(engine, session, view=view, top_k=top_k), view, factory


class TestPreload:
    def test_reports_ready(self):
        controller, view, factory = make_controller()

        assert asyncio.run(controller.preload()) is True
        assert view.messages == ["System: Pre-loading AI Model...", "System: AI Model is ready to chat!"]
        assert ("Loading fake model...", STYLE_LOADING) in view.statuses
        assert view.statuses[-1] == ("Model Ready", STYLE_READY)
        assert controller.engine.embedder.load_calls == 1

    def test_reports_failure(self):
        controller, view, _ = make_controller(failures=1)

        assert asyncio.run(controller.preload()) is False
        assert view.messages[-1].startswith("System: Model load failed - ")
        assert view.statuses[-1] == ("Error", STYLE_ERROR)


class TestIngestFiles:
    def test_success_messages(self):
        controller, view, _ = make_controller()
        docs = [FakeDocument("A.pdf", "apples"), FakeDocument("B.pdf", "bananas")]

        results = asyncio.run(controller.ingest_files(docs))

        assert len(results) == 2
        assert view.messages == ["System: Reading 2 file(s)...", "System: Successfully read 2 documents."]
        assert ("Reading A.pdf...", STYLE_BUSY) in view.statuses
        assert ("Embedding 1 segments...", STYLE_BUSY) in view.statuses
        assert view.statuses[-1] == ("Ready", STYLE_READY)

    def test_nothing_readable(self):
        controller, view, _ = make_controller()

        results = asyncio.run(controller.ingest_files([FakeDocument("a.txt", "x", type="text/plain")]))

        assert results == []
        assert view.messages[-1] == "System: No documents could be read."


class TestBuildContext:
    def test_empty_knowledge_base(self):
        controller, _, _ = make_controller()
        assert asyncio.run(controller.build_context("anything")) == ""

    def test_lists_sources_then_matches(self):
        controller, _, _ = make_controller(top_k=1)
        asyncio.run(controller.ingest_files([
            FakeDocument("zoo.pdf", "zebra zoo"),
            FakeDocument("fruit.pdf", "apple apple"),
        ]))

        context = asyncio.run(controller.build_context("apple"))

        assert context == (
            "Available Documents in Knowledge Base:\n- fruit.pdf\n- zoo.pdf\n\n"
            "Relevant Content:\n[Source: fruit.pdf]\napple apple"
        )

    def test_search_failure_keeps_source_list(self):
        embedder = FakeEmbedder(fail_on="boom")
        controller, _, _ = make_controller(embedder=embedder)
        asyncio.run(controller.ingest_files([FakeDocument("A.pdf", "apples")]))

        context = asyncio.run(controller.build_context("boom"))

        assert context == "Available Documents in Knowledge Base:\n- A.pdf\n\n"


class TestSendMessage:
    def test_reply_with_context(self):
        backend = FakeBackend(deltas=("Apples", " are fruit."))
        controller, view, _ = make_controller(backend)
        asyncio.run(controller.ingest_files([FakeDocument("fruit.pdf", "apple facts")]))

        reply = asyncio.run(controller.send_message("apple?"))

        assert reply == "Apples are fruit."
        user_content = backend.calls[0][-1]["content"]
        assert user_content.startswith("Here is some relevant context from the provided documents:\n")
        assert "[Source: fruit.pdf]\napple facts" in user_content
        assert user_content.endswith("apple?")
        assert view.partials == ["Apples", "Apples are fruit.", "Apples are fruit."]
        assert ("Generating Answer...", STYLE_GENERATING) in view.statuses
        assert view.statuses[-1] == ("Ready", STYLE_READY)
        assert view.loading == [True, False]

    def test_no_documents_sends_plain_question(self, backend):
        controller, _, _ = make_controller(backend)
        asyncio.run(controller.send_message("hello?"))
        assert backend.calls[0][-1]["content"] == "hello?"

    def test_model_load_failure(self):
        controller, view, _ = make_controller(failures=1)

        assert asyncio.run(controller.send_message("hi")) is None
        assert view.messages[-1].startswith("System: Failed to load model - ")
        assert view.loading == []

    def test_generation_error_is_shown(self):
        controller, view, _ = make_controller(FakeBackend(deltas=("Par",), error=RuntimeError("boom")))

        assert asyncio.run(controller.send_message("hi")) is None
        assert view.partials[-1].startswith("**Error**: ")
        assert view.statuses[-1] == ("Error", STYLE_ERROR)
        assert view.loading == [True, False]

    def test_stop(self):
        backend = FakeBackend(deltas=("Hello", " there"), hold_after=1)
        controller, view, _ = make_controller(backend)

        async def scenario():
            task = asyncio.ensure_future(controller.send_message("hi"))
            await backend.holding.wait()
            await controller.stop()
            return await task

        assert asyncio.run(scenario()) is None
        assert view.partials == ["Hello"]
        assert view.statuses[-1] == ("Stopped", STYLE_STOPPED)
        assert view.loading[-1] is False

    def test_options_are_applied(self, backend):
        controller, _, _ = make_controller(backend)
        controller.update_options(system_prompt="Answer in French.", temperature=0.1)

        asyncio.run(controller.send_message("hi"))

        assert backend.calls[0][0]["content"] == "Answer in French."
        assert backend.temperatures == [0.1]

    def test_new_chat(self):
        controller, _, _ = make_controller()
        asyncio.run(controller.send_message("hi"))
        controller.new_chat()
        assert controller.session.history == ()
