import hashlib

from app.services.fingerprint import fingerprint

BASE_CV = "Experienced backend engineer with 8 years of Python, FastAPI and PostgreSQL."


def test_fingerprint_is_sha256_hex():
    assert fingerprint(BASE_CV) == hashlib.sha256(BASE_CV.encode("utf-8")).hexdigest()
    assert len(fingerprint(BASE_CV)) == 64


def test_fingerprint_is_stable():
    assert len({fingerprint(BASE_CV) for _ in range(50)}) == 1


def test_near_duplicates_differ():
    variants = [
        BASE_CV + " ",
        " " + BASE_CV,
        BASE_CV.lower(),
        BASE_CV.replace("8", "9"),
        BASE_CV.replace(".", ""),
        BASE_CV + "\n",
        BASE_CV.replace("Python", "Pyth0n"),
    ]
    variants += [BASE_CV[:i] + BASE_CV[i + 1:] for i in range(len(BASE_CV))]
    digests = {fingerprint(v) for v in variants}
    assert fingerprint(BASE_CV) not in digests
    assert len(digests) == len(set(variants))


def test_unicode_content():
    assert fingerprint("Zoë Müller — 履歴書") != fingerprint("Zoe Muller - 履歴書")
