from __future__ import annotations

import hashlib
import itertools

from reviewmirror.fingerprint import canonical_payload, compute_content_hash
from reviewmirror.models import ReviewComment

COMMENTS = [
    ReviewComment(path="src/b.ts", line=7, start_line=5, body="Handle the null case."),
    ReviewComment(path="src/a.ts", line=10, body="Typo in variable name."),
    ReviewComment(path="src/a.ts", line=3, body="Unused import."),
    ReviewComment(path="src/a.ts", line=10, body="Second note on the same line."),
]


def test_hash_is_permutation_invariant():
    expected = compute_content_hash(COMMENTS, "Looks good overall.")
    for perm in itertools.permutations(COMMENTS):
        assert compute_content_hash(list(perm), "Looks good overall.") == expected


def test_hash_ignores_author_and_timestamp():
    a = [ReviewComment(path="x.py", line=1, body="b", author="bot", created_at="2026-01-01T00:00:00Z")]
    b = [ReviewComment(path="x.py", line=1, body="b", author="other", created_at="2026-02-01T00:00:00Z")]
    assert compute_content_hash(a) == compute_content_hash(b)


def test_hash_changes_with_any_field():
    base = compute_content_hash(COMMENTS, "summary")
    first = COMMENTS[0]
    variants = [
        ReviewComment(path="src/c.ts", line=first.line, start_line=first.start_line, body=first.body),
        ReviewComment(path=first.path, line=8, start_line=first.start_line, body=first.body),
        ReviewComment(path=first.path, line=first.line, start_line=4, body=first.body),
        ReviewComment(path=first.path, line=first.line, start_line=None, body=first.body),
        ReviewComment(path=first.path, line=first.line, start_line=first.start_line, body="Other."),
    ]
    for variant in variants:
        assert compute_content_hash([variant, *COMMENTS[1:]], "summary") != base
    assert compute_content_hash(COMMENTS, "summary!") != base
    assert compute_content_hash(COMMENTS[1:], "summary") != base
    assert compute_content_hash(COMMENTS, "") != base


def test_hash_is_sha256_of_canonical_payload():
    payload = canonical_payload(COMMENTS[:1], "tail")
    assert payload.endswith("]tail")
    assert '"start_line": 5' in payload
    assert compute_content_hash(COMMENTS[:1], "tail") == hashlib.sha256(payload.encode()).hexdigest()


def test_empty_inputs_hash_empty_array():
    assert canonical_payload([], "") == "[]"
    assert len(compute_content_hash([], "")) == 64
