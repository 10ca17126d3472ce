"""Tests for ggml_converter.core.models — enums, requests and failures."""

from __future__ import annotations

import dataclasses

import pytest

from ggml_converter.core.models import (
    ConversionFailed,
    ConversionRequest,
    FailureKind,
    FetchFailed,
    PipelineOutcome,
    QuantProfile,
    ReducerMissing,
    SourceModel,
    Stage,
    UnknownArtifact,
    UnknownProfile,
)


class TestEnums:
    def test_repo_ids(self):
        assert SourceModel.Llama2_7b.repo_id == "meta-llama/Llama-2-7b-hf"
        assert SourceModel.Llama2Chat7b.repo_id == "meta-llama/Llama-2-7b-chat-hf"
        assert SourceModel.Llama2Chinese7b.repo_id == "LinkSoul/Chinese-Llama-2-7b"

    def test_quant_tags(self):
        assert [p.tag for p in QuantProfile] == ["q4_0", "q8_0", "f16", "f32"]

    def test_wire_value_is_member_name(self):
        assert SourceModel("Llama2Chat7b") is SourceModel.Llama2Chat7b
        assert QuantProfile("Q8") is QuantProfile.Q8


class TestConversionRequest:
    def test_parse(self):
        req = ConversionRequest.parse("Llama2_7b", "Q4")
        assert req.source_name is SourceModel.Llama2_7b
        assert req.profile is QuantProfile.Q4

    def test_parse_unknown_source(self):
        with pytest.raises(UnknownArtifact, match="Falcon"):
            ConversionRequest.parse("Falcon", "Q4")

    def test_parse_unknown_profile(self):
        with pytest.raises(UnknownProfile, match="Q2"):
            ConversionRequest.parse("Llama2_7b", "Q2")

    def test_immutable(self):
        req = ConversionRequest.parse("Llama2_7b", "Q4")
        with pytest.raises(dataclasses.FrozenInstanceError):
            req.profile = QuantProfile.Q8  # type: ignore[misc]


class TestStageFailure:
    def test_classification(self):
        assert ConversionFailed("x").stage is Stage.CONVERT
        assert ConversionFailed("x").kind is FailureKind.DETERMINISTIC
        assert ReducerMissing("x").stage is Stage.REDUCE
        assert ReducerMissing("x").kind is FailureKind.FATAL

    def test_fetch_failed_cause(self):
        failure = FetchFailed("Llama2_7b", 3)
        assert failure.cause == "Failed to fetch 'Llama2_7b' after 3 attempt(s)"
        assert str(failure) == failure.cause

    def test_to_dict(self):
        assert ConversionFailed("exit 1").to_dict() == {
            "stage": "Convert",
            "kind": "DeterministicFailure",
            "error": "ConversionFailed",
            "cause": "exit 1",
        }


def test_outcome_ok():
    assert PipelineOutcome().ok
    assert not PipelineOutcome(failure=ConversionFailed("x")).ok
