import pytest

from enchls.crypto import AES_256_GCM, b64
from enchls.errors import (
    KeyNotFound,
    MalformedKeyMaterial,
    MalformedManifest,
    TruncatedNonceDirective,
    UnsupportedMethod,
)
from enchls.manifest import (
    KEY_TAG,
    NONCE_TAG,
    ManifestCodec,
    SegmentRef,
    is_encrypted_segment,
    is_synthetic_url,
    segment_id,
)

PLAIN_MANIFEST = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#EXT-X-MEDIA-SEQUENCE:0
#EXTINF:10.0,
segment0000.ts
#EXTINF:10.0,
segment0001.ts
#EXT-X-ENDLIST
"""


def make_segments(generator, n=3, duration=10.0):
    return [SegmentRef(reference=f"segment{i:04d}.enc", nonce=generator.generate_nonce(), duration=duration)
            for i in range(n)]


def test_render_layout(codec, generator, key):
    segments = make_segments(generator, 2)

    text = codec.render(segments, key)
    lines = text.splitlines()

    assert lines[:5] == [
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        "#EXT-X-TARGETDURATION:10",
        "#EXT-X-MEDIA-SEQUENCE:0",
        "#EXT-X-PLAYLIST-TYPE:VOD",
    ]
    assert f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(key)}"' in lines
    first = lines.index("segment0000.enc")
    assert lines[first - 1] == f"{NONCE_TAG}{b64(segments[0].nonce)}"
    assert lines[first - 2] == "#EXTINF:10.0,"
    assert lines[-1] == "#EXT-X-ENDLIST"
    assert text.endswith("\n")


def test_render_target_duration(codec, generator, key):
    segments = [SegmentRef("a.enc", generator.generate_nonce(), 9.2),
                SegmentRef("b.enc", generator.generate_nonce(), 10.4)]
    assert "#EXT-X-TARGETDURATION:11" in codec.render(segments, key).splitlines()
    assert "#EXT-X-TARGETDURATION:12" in codec.render(segments, key, target_duration=12).splitlines()


def test_render_validates_inputs(codec, generator, key):
    with pytest.raises(ValueError):
        codec.render([], key)
    with pytest.raises(MalformedKeyMaterial):
        codec.render(make_segments(generator, 1), key[:31])
    with pytest.raises(MalformedKeyMaterial):
        codec.render([SegmentRef("a.enc", b"\x00" * 13, 10.0)], key)
    with pytest.raises(UnsupportedMethod):
        codec.render(make_segments(generator, 1), key, method="XOR")


@pytest.mark.parametrize("n", [1, 2, 7, 120])
def test_manifest_round_trip(codec, generator, key, n):
    segments = make_segments(generator, n)

    parsed = codec.parse(codec.render(segments, key))

    assert parsed.key == key
    assert parsed.method == "CHACHA20-POLY1305"
    assert dict(parsed.nonces) == {s.reference: s.nonce for s in segments}


def test_round_trip_aes_method(codec, generator, key):
    text = codec.render(make_segments(generator, 2), key, method=AES_256_GCM)
    assert codec.parse(text).method == AES_256_GCM


def test_cleaned_manifest_is_standard(codec, generator, key):
    segments = make_segments(generator, 3)

    cleaned = codec.parse(codec.render(segments, key), base_url="http://cdn.test/a/playlist.m3u8").cleaned

    assert KEY_TAG not in cleaned
    assert NONCE_TAG not in cleaned
    uri_lines = [l for l in cleaned.splitlines() if l and not l.startswith("#")]
    assert uri_lines == [s.reference for s in segments]
    assert cleaned.count("#EXTINF:10.0,") == 3
    assert cleaned.rstrip().endswith("#EXT-X-ENDLIST")


def test_nonce_table_is_read_only(codec, generator, key):
    parsed = codec.parse(codec.render(make_segments(generator, 1), key))
    with pytest.raises(TypeError):
        parsed.nonces["x.enc"] = b"\x00" * 12


def test_missing_key_passes_through_unchanged(codec):
    with pytest.raises(KeyNotFound) as exc:
        codec.parse(PLAIN_MANIFEST, base_url="blob:1234")
    assert exc.value.cleaned_manifest == PLAIN_MANIFEST


def test_nonce_binds_to_next_uri_line(codec, key):
    nonce = bytes(range(12))
    text = "\n".join([
        "#EXTM3U",
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(key)}"',
        f"{NONCE_TAG}{b64(nonce)}",
        "",
        "# a comment",
        "#EXTINF:10.0,",
        "https://cdn.test/path/to/seg42.enc?token=abc",
        "#EXT-X-ENDLIST",
    ])

    parsed = codec.parse(text)

    assert dict(parsed.nonces) == {"seg42.enc": nonce}


def test_truncated_nonce_directive(codec, generator, key):
    text = codec.render(make_segments(generator, 1), key)
    text = text.replace("#EXT-X-ENDLIST\n", f"{NONCE_TAG}{b64(generator.generate_nonce())}\n\n#EXT-X-ENDLIST\n")
    with pytest.raises(TruncatedNonceDirective):
        codec.parse(text)


def test_both_base64_dialects_accepted(codec, key):
    nonce = b"\xfb\xff\xbf" * 4
    urlsafe = b64(nonce).replace("+", "-").replace("/", "_").rstrip("=")
    key_urlsafe = b64(key).replace("+", "-").replace("/", "_").rstrip("=")
    text = (
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{key_urlsafe}"\n'
        f"{NONCE_TAG}{urlsafe}\n"
        "seg.enc\n"
    )

    parsed = codec.parse(text)

    assert parsed.key == key
    assert parsed.nonces["seg.enc"] == nonce


def test_undecodable_nonce_is_left_out(codec, generator, key):
    segments = make_segments(generator, 3)
    text = codec.render(segments, key).replace(b64(segments[1].nonce), "***corrupt***")

    parsed = codec.parse(text)

    assert set(parsed.nonces) == {"segment0000.enc", "segment0002.enc"}


def test_undecodable_key_is_fatal(codec):
    text = f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,@@@@"\nseg.enc\n'
    with pytest.raises(MalformedManifest):
        codec.parse(text)


def test_duplicate_key_directive(codec, generator, key):
    text = codec.render(make_segments(generator, 1), key)
    key_line = next(l for l in text.splitlines() if l.startswith(KEY_TAG))
    with pytest.raises(MalformedManifest):
        codec.parse(text.replace(key_line, key_line + "\n" + key_line))


def test_key_directive_after_nonce(codec, key):
    text = (
        f"{NONCE_TAG}{b64(bytes(12))}\n"
        "a.enc\n"
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(key)}"\n'
    )
    with pytest.raises(MalformedManifest):
        codec.parse(text)


def test_unknown_method(codec, key):
    text = f'{KEY_TAG}METHOD=ROT13,URI="data:text/plain;base64,{b64(key)}"\n'
    with pytest.raises(UnsupportedMethod):
        codec.parse(text)


def test_synthetic_base_url_rewrites_relative_enc_references(codec, generator, key):
    segments = make_segments(generator, 2)
    text = codec.render(segments, key) + "/abs/seg.enc\nhttps://other.test/x.enc\nplain.ts\n"

    parsed = codec.parse(text, base_url="blob:9b1c4e2a")
    uri_lines = [l for l in parsed.cleaned.splitlines() if l and not l.startswith("#")]

    assert uri_lines == [
        "http://cdn.test/output/asset/segment0000.enc",
        "http://cdn.test/output/asset/segment0001.enc",
        "/abs/seg.enc",
        "https://other.test/x.enc",
        "plain.ts",
    ]
    # table keys come from the original lines
    assert set(parsed.nonces) == {"segment0000.enc", "segment0001.enc"}


def test_network_base_url_does_not_rewrite(codec, generator, key):
    parsed = codec.parse(codec.render(make_segments(generator, 1), key),
                         base_url="http://cdn.test/output/asset/encrypted-playlist.m3u8")
    assert "segment0000.enc" in parsed.cleaned.splitlines()


def test_url_helpers():
    assert segment_id("http://h/a/b/segment0001.enc?x=1#frag") == "segment0001.enc"
    assert segment_id("segment0001.enc") == "segment0001.enc"
    assert is_encrypted_segment("http://h/a/s.enc?sig=1")
    assert not is_encrypted_segment("http://h/a/s.ts")
    assert is_synthetic_url("blob:abc")
    assert is_synthetic_url("memory:playlist")
    assert not is_synthetic_url("http://h/p.m3u8")
    assert not is_synthetic_url(None)


def test_segment_before_key_directive(codec, key):
    text = (
        "#EXTM3U\n"
        "#EXTINF:10.0,\n"
        "early.enc\n"
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(key)}"\n'
        f"{NONCE_TAG}{b64(bytes(12))}\n"
        "late.enc\n"
    )
    with pytest.raises(MalformedManifest):
        codec.parse(text)


def test_two_nonce_directives_before_one_segment(codec, key):
    text = (
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(key)}"\n'
        "#EXTINF:10.0,\n"
        f"{NONCE_TAG}{b64(bytes(12))}\n"
        f"{NONCE_TAG}{b64(bytes(range(12)))}\n"
        "seg.enc\n"
    )
    with pytest.raises(MalformedManifest):
        codec.parse(text)


def test_short_key_payload_is_malformed_key_material(codec):
    text = (
        f'{KEY_TAG}METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,{b64(bytes(16))}"\n'
        f"{NONCE_TAG}{b64(bytes(12))}\n"
        "seg.enc\n"
    )
    with pytest.raises(MalformedKeyMaterial):
        codec.parse(text)
