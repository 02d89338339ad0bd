import numpy as np
import pytest

from whisperflow.backends import load_backend
from whisperflow.errors import ModelLoadError
from whisperflow.models.whisper import LocalModelFiles, get_model


def tiny_whisper(transformers):
    config = transformers.WhisperConfig(
        vocab_size=64,
        num_mel_bins=80,
        d_model=16,
        encoder_layers=1,
        encoder_attention_heads=2,
        encoder_ffn_dim=32,
        decoder_layers=1,
        decoder_attention_heads=2,
        decoder_ffn_dim=32,
        max_source_positions=1500,
        max_target_positions=64,
    )
    return transformers.WhisperForConditionalGeneration(config).eval()


@pytest.fixture
def torch_stack():
    torch = pytest.importorskip("torch")
    transformers = pytest.importorskip("transformers")
    safetensors_torch = pytest.importorskip("safetensors.torch")
    return torch, transformers, safetensors_torch


def checkpoint(model, skip=("proj_out.weight",)):
    # tied tensors share storage, so save independent copies
    return {
        key: value.detach().clone().contiguous()
        for key, value in model.state_dict().items()
        if key not in skip
    }


def test_unknown_backend(tmp_path):
    files = LocalModelFiles(descriptor=get_model("tiny"), weights=tmp_path / "model.safetensors")
    with pytest.raises(ValueError, match="Unknown backend"):
        load_backend("onnx", files)


def test_decoder_oracle_scores_last_position(torch_stack):
    torch, transformers, _ = torch_stack
    from whisperflow.backends.transformers_backend import _DecoderOracle

    torch.manual_seed(0)
    model = tiny_whisper(transformers)
    with torch.no_grad():
        states = model.model.encoder(torch.zeros(1, 80, 3000)).last_hidden_state
    oracle = _DecoderOracle(torch, model, states)

    padded = oracle([[1, 2, 3], [4]])
    alone = oracle([[4]])

    assert len(padded) == 2
    assert padded[0].shape == (64,)
    assert np.exp(padded[0]).sum() == pytest.approx(1.0, abs=1e-4)
    np.testing.assert_allclose(padded[1], alone[0], atol=1e-5)


def test_load_weights_accepts_checkpoint_without_tied_projection(torch_stack, tmp_path):
    torch, transformers, safetensors_torch = torch_stack
    from whisperflow.backends.transformers_backend import load_weights

    source = tiny_whisper(transformers)
    path = tmp_path / "model.safetensors"
    safetensors_torch.save_file(checkpoint(source), str(path))

    target = tiny_whisper(transformers)
    load_weights(target, path)

    name = "model.decoder.layers.0.fc1.weight"
    assert torch.equal(target.state_dict()[name], source.state_dict()[name])
    assert torch.equal(target.proj_out.weight, target.model.decoder.embed_tokens.weight)


def test_load_weights_rejects_missing_tensors(torch_stack, tmp_path):
    _, transformers, safetensors_torch = torch_stack
    from whisperflow.backends.transformers_backend import load_weights

    model = tiny_whisper(transformers)
    path = tmp_path / "model.safetensors"
    partial = checkpoint(model, skip=("proj_out.weight", "model.decoder.layers.0.fc1.weight"))
    safetensors_torch.save_file(partial, str(path))

    with pytest.raises(ModelLoadError, match="fc1.weight"):
        load_weights(tiny_whisper(transformers), path)


def test_load_weights_rejects_truncated_file(torch_stack, tmp_path):
    _, transformers, safetensors_torch = torch_stack
    from whisperflow.backends.transformers_backend import load_weights

    path = tmp_path / "model.safetensors"
    safetensors_torch.save_file(checkpoint(tiny_whisper(transformers)), str(path))
    path.write_bytes(path.read_bytes()[:64])

    with pytest.raises(ModelLoadError, match="Cannot read weights"):
        load_weights(tiny_whisper(transformers), path)


def test_load_weights_rejects_missing_file(torch_stack, tmp_path):
    _, transformers, _ = torch_stack
    from whisperflow.backends.transformers_backend import load_weights

    with pytest.raises(ModelLoadError):
        load_weights(tiny_whisper(transformers), tmp_path / "absent.safetensors")


def test_backends_share_the_decoder_oracle_protocol():
    from whisperflow.backends import ScoringOracle
    from whisperflow.decoding import beam

    assert ScoringOracle is beam.ScoringOracle
