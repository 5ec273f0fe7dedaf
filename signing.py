"""
Artifact signing with gpg: every published file gets an ASCII-armored
detached signature next to it (``<file>.asc``).
"""
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import config as cfg
import toolchain
from errors import SigningFailure


class GpgSigner:
    """
    Signs artifacts by running ``gpg --detach-sign --armor``.

    key_id  – ``--local-user`` to sign with; None uses gpg's default key
    runner  – tool runner, replaced in tests
    """

    def __init__(
        self,
        key_id: Optional[str] = cfg.GPG_KEY_ID,
        *,
        runner: Optional[toolchain.ToolRunner] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.key_id = key_id
        self.runner = runner
        self.env    = env

    def command(self, artifact: Path, signature: Path) -> List[str]:
        cmd = ["gpg", "--batch", "--yes", "--detach-sign", "--armor"]
        if self.key_id:
            cmd += ["--local-user", self.key_id]
        return cmd + ["--output", str(signature), str(artifact)]

    def sign(self, artifact: Path) -> Path:
        """Sign *artifact*; raises ``SigningFailure`` if no signature was produced."""
        signature = artifact.with_name(artifact.name + ".asc")
        if signature.exists():
            signature.unlink()
        ok = toolchain.run_tool(
            self.command(artifact, signature),
            artifact.parent,
            label=f"gpg:{artifact.name}",
            env=self.env,
            runner=self.runner,
        )
        if not ok or not signature.is_file():
            raise SigningFailure(f"could not sign {artifact.name}")
        return signature

    def sign_all(self, artifacts: Iterable[Path]) -> List[Path]:
        return [self.sign(a) for a in artifacts]
