"""
Description:
    Event queue handed to an external visualizer.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
from typing import List, Union
from datatypes import ProposalEvent, DecisionEvent

Event = Union[ProposalEvent, DecisionEvent]

class EventQueue:
    """
    Append-only record of sampler events, in emission order.

    Per step the sampler pushes one ProposalEvent followed by one
    DecisionEvent. Nothing here is read back by the sampler.
    """
    def __init__(self):
        self.queue: List[Event] = []

    def push(self, event: Event) -> None:
        self.queue.append(event)

    def drain(self) -> List[Event]:
        """Return all queued events and empty the queue"""
        events, self.queue = self.queue, []
        return events

    def __len__(self) -> int:
        return len(self.queue)
