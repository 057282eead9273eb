"""Terminal node of the research flow."""

from __future__ import annotations

import logging
from typing import Any

from deep_research.flow.node import BaseNode

logger = logging.getLogger(__name__)


class EndNode(BaseNode):
    """Accepts any shared object and routes nowhere."""

    def post(self, shared: Any, prep_res: Any, exec_res: Any) -> None:
        logger.debug("end: research flow finished")
        return None
