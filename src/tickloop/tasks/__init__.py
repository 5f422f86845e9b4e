"""
Scheduling subsystem.

Components:
- task_models.py: data structures (Task, ExecutionRecord, policies)
- task_queue.py: FIFO TaskQueue
- strategies.py: pluggable queue-selection strategies
- task_scheduler.py: the Scheduler (event loop)
- chunked.py: ChunkedComputation, a search that yields between slices
- watchdog.py: external unresponsiveness monitor
"""
