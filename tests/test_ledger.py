import threading

from crawl_validation_service.jobs.ledger import ErrorLedger
from crawl_validation_service.jobs.models import CrawlJob, JobStatus
from crawl_validation_service.jobs.registry import DuplicateJobError, JobRegistry


def test_ledger_counts_errors_and_documents():
    ledger = ErrorLedger()
    ledger.increment("ISO 19005-1-6.1.2-1")
    ledger.merge({"ISO 19005-1-6.1.2-1": 2, "ISO 19005-1-6.3.4-1": 1})
    ledger.record_document(True)
    ledger.record_document(False)

    snapshot = ledger.snapshot()
    assert snapshot["errors"] == {"ISO 19005-1-6.1.2-1": 3, "ISO 19005-1-6.3.4-1": 1}
    assert snapshot["valid_documents"] == 1
    assert snapshot["invalid_documents"] == 1
    assert len(ledger) == 4

    ledger.clear()
    assert ledger.snapshot() == {"errors": {}, "valid_documents": 0, "invalid_documents": 0}


def test_ledger_snapshot_is_a_copy():
    ledger = ErrorLedger()
    ledger.increment("rule")
    ledger.error_counts()["rule"] = 100
    assert ledger.error_counts() == {"rule": 1}


def test_ledger_concurrent_updates_are_not_lost():
    ledger = ErrorLedger()

    def worker():
        for _ in range(1000):
            ledger.increment("rule")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert ledger.error_counts() == {"rule": 4000}


def test_registry_rejects_second_job_for_same_url():
    registry = JobRegistry()
    first = CrawlJob.create("https://example.com")
    registry.add(first)

    try:
        registry.add(CrawlJob.create("https://example.com"))
    except DuplicateJobError:
        pass
    else:
        raise AssertionError("duplicate URL should be rejected")

    assert registry.find_by_url("https://example.com") is first
    assert registry.ledger_for(first.job_id) is first.ledger
    assert registry.ledger_for(None) is None

    registry.remove(first.job_id)
    assert first.job_id not in registry
    assert registry.find_by_url("https://example.com") is None


def test_mark_finished_is_write_once():
    job = CrawlJob.create("https://example.com")
    job.status = JobStatus.RUNNING

    assert job.mark_finished(JobStatus.FINISHED, "https://result/1")
    first_finish = job.finish_time
    assert not job.mark_finished(JobStatus.ABORTED, "https://result/2")

    assert job.finish_time == first_finish
    assert job.result_url == "https://result/1"
    assert job.status is JobStatus.FINISHED


def test_terminated_status_survives_engine_finish():
    job = CrawlJob.create("https://example.com")
    job.status = JobStatus.TERMINATED
    job.mark_finished(JobStatus.FINISHED, "https://result/1")
    assert job.status is JobStatus.TERMINATED
