"""
courier_crypto — Live Demo: register, send, revoke, fall back
=============================================================
Run:  python examples/demo_transfer.py

Walks one document from sender to receiver through the envelope protocol,
then revokes the receiver's key and shows the legacy single-key fallback.
"""

import sys, os, time, logging, tempfile
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from courier_crypto import (CourierConfig, Receiver, RegistryDirectory, Sender,
                            hasher)

LINE = "═" * 70
DOC  = b"hello-pdf"

def header(step, name):
    print(f"\n{LINE}")
    print(f"  Step {step} — {name}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")

logging.basicConfig(level=logging.INFO, format='    %(name)s: %(message)s')

print(f"\n{LINE}")
print("  courier_crypto — Envelope Transfer Demo")
print(LINE)

with tempfile.TemporaryDirectory() as keys_dir:
    # ── STEP 1 ───────────────────────────────────────────────────────────────
    header(1, "Receiver boot (load-or-generate key pair, seed registry)")
    t0 = time.perf_counter()
    config = CourierConfig(keys_dir=keys_dir, key_name="tribunal", device_name="court-1")
    receiver, registry = Receiver.boot(config)
    ok("keyId",       receiver.identity.key_id)
    ok("Boot time",   f"{(time.perf_counter() - t0) * 1000:.0f} ms")

    directory = RegistryDirectory(registry, receiver.identity)
    sender    = Sender(directory, receiver.receive)

    # ── STEP 2 ───────────────────────────────────────────────────────────────
    header(2, "Send to the active recipient set")
    receipt = sender.send("State v. Doe", "hello.pdf", DOC)
    ok("Case id",     receipt.case_id)
    ok("Recipients",  ", ".join(receipt.recipients))
    ok("Digest",      receipt.content_digest)

    # ── STEP 3 ───────────────────────────────────────────────────────────────
    header(3, "List and download (on-demand decryption)")
    for case in receiver.list_cases():
        ok(f"#{case.id} {case.case_name}", case.content_digest[:16] + "...")
    download = receiver.download(receipt.case_id)
    ok("Plaintext",   download.plaintext.decode())
    ok("Verified",    download.verified)
    assert download.verified and hasher.digest(download.plaintext) == receipt.content_digest

    # ── STEP 4 ───────────────────────────────────────────────────────────────
    header(4, "Revoke key, send again (legacy fallback)")
    registry.revoke(receiver.identity.key_id)
    receipt = sender.send("State v. Doe (2)", "hello2.pdf", DOC)
    ok("Legacy shape", receipt.legacy)
    download = receiver.download(receipt.case_id)
    ok("Plaintext",   download.plaintext.decode())
    ok("Verified",    download.verified)

print(f"\n{LINE}\n")
