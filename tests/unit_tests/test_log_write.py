"""
Log 写入/删除单元测试

测试写入流水线：日志名刷新、请求合并、partialSuccess、默认重试次数、
截断、回调与错误传播。
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as api_exceptions

from conftest import GLOBAL_RESOURCE, PROJECT_ID, no_instrumentation, sent_call_options, sent_request
from cloudlog.client import Logging
from cloudlog.entry import Entry
from cloudlog.exceptions import InvalidLogNameError
from cloudlog.instrumentation import DIAGNOSTIC_INFO_KEY, InstrumentationAttacher
from cloudlog.log import Log
from cloudlog.truncation import serialized_size
from cloudlog.types import LogOptions, WriteOptions


class TestLogConstruction:
    """Log 构造测试"""

    def test_name_before_project_resolution(self, logging_client) -> None:
        """项目 ID 解析前应使用占位符"""
        log = logging_client.log("syslog")
        assert log.name == "syslog"
        assert log.formatted_name_ == "projects/{{projectId}}/logs/syslog"

    def test_name_is_encoded(self, logging_client) -> None:
        log = logging_client.log("my/log")
        assert log.name == "my%2Flog"

    def test_empty_name_rejected(self, logging_client) -> None:
        with pytest.raises(InvalidLogNameError):
            logging_client.log("")

    def test_truncation_fields(self, logging_client) -> None:
        log = logging_client.log(
            "syslog",
            json_fields_to_truncate=["jsonPayload.fields.detail.stringValue", "labels.x"],
        )
        assert log.json_fields_to_truncate[0] == "jsonPayload.fields.detail.stringValue"
        assert "labels.x" not in log.json_fields_to_truncate

    def test_explicit_options_model(self, logging_client) -> None:
        log = Log(logging_client, "syslog", LogOptions(max_entry_size=100, remove_circular=True))
        assert log.max_entry_size == 100
        assert log.remove_circular_ is True


class TestWrite:
    """write 流水线测试"""

    @pytest.mark.asyncio
    async def test_single_structured_entry(self, log, service) -> None:
        """结构化 payload 写入：资源来自缓存，entries 为 Struct 形式"""
        await log.write(log.entry({"user": "abc"}))
        request = sent_request(service)
        assert request["logName"] == f"projects/{PROJECT_ID}/logs/syslog"
        assert request["resource"] == GLOBAL_RESOURCE
        assert len(request["entries"]) == 1
        assert request["entries"][0]["jsonPayload"] == {"fields": {"user": {"stringValue": "abc"}}}

    @pytest.mark.asyncio
    async def test_log_name_refreshed_after_resolution(self, log) -> None:
        await log.write("x")
        assert log.formatted_name_ == "projects/proj1/logs/syslog"

    @pytest.mark.asyncio
    async def test_raw_values_are_normalized(self, log, service) -> None:
        """非 Entry 输入应经 entry() 规范化"""
        await log.write(["text", {"k": "v"}, {"httpRequest": {"status": 500}}])
        entries = sent_request(service)["entries"]
        assert entries[0]["textPayload"] == "text"
        assert entries[1]["jsonPayload"]["fields"]["k"] == {"stringValue": "v"}
        assert entries[2]["httpRequest"] == {"status": 500}
        assert entries[2]["jsonPayload"] == {"fields": {}}

    @pytest.mark.asyncio
    async def test_batch_order_preserved(self, log, service) -> None:
        await log.write([log.entry(str(i)) for i in range(5)])
        assert [e["textPayload"] for e in sent_request(service)["entries"]] == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_options_merged_into_request(self, log, service) -> None:
        options = WriteOptions(dry_run=True, partial_success=False, labels={"env": "test"})
        await log.write("x", options)
        request = sent_request(service)
        assert request["dryRun"] is True
        assert request["partialSuccess"] is False
        assert request["labels"] == {"env": "test"}

    @pytest.mark.asyncio
    async def test_call_options_travel_out_of_band(self, log, service) -> None:
        """call_options 不应出现在请求体中"""
        await log.write("x", WriteOptions(call_options={"timeout": 5}))
        assert "call_options" not in sent_request(service)
        assert "callOptions" not in sent_request(service)
        assert sent_call_options(service) == {"timeout": 5}

    @pytest.mark.asyncio
    async def test_protected_fields_use_computed_values(self, log, service) -> None:
        await log.write("x", WriteOptions(resource={"type": "gce_instance", "labels": {"zoneName": "z"}}))
        request = sent_request(service)
        assert request["logName"] == "projects/proj1/logs/syslog"
        assert request["resource"] == {"type": "gce_instance", "labels": {"zone_name": "z"}}

    @pytest.mark.asyncio
    async def test_caller_options_not_mutated(self, log) -> None:
        labels = {"projectId": "p"}
        options = WriteOptions(resource={"type": "global", "labels": labels}, call_options={"timeout": 1})
        await log.write("x", options)
        assert labels == {"projectId": "p"}
        assert options.call_options == {"timeout": 1}


class TestInstrumentation:
    """instrumentation 信息附加测试"""

    @pytest.fixture
    def instrumented_client(self, auth, service, detector, client_settings):
        return Logging(
            auth=auth,
            service=service,
            resource_detector=detector,
            instrumentation=InstrumentationAttacher(),
            client_settings=client_settings,
        )

    @pytest.mark.asyncio
    async def test_first_write_forces_partial_success(self, instrumented_client, service) -> None:
        """首次写入附加诊断 entry 并强制 partialSuccess"""
        log = instrumented_client.log("syslog")
        await log.write("x", WriteOptions(partial_success=False))
        request = sent_request(service)
        assert request["partialSuccess"] is True
        assert len(request["entries"]) == 2
        assert DIAGNOSTIC_INFO_KEY in request["entries"][1]["jsonPayload"]["fields"]

    @pytest.mark.asyncio
    async def test_later_writes_unchanged(self, instrumented_client, service) -> None:
        log = instrumented_client.log("syslog")
        await log.write("x")
        await log.write("y")
        request = sent_request(service)
        assert "partialSuccess" not in request
        assert len(request["entries"]) == 1


class TestRetryDefaults:
    """默认重试次数注入测试"""

    @pytest.mark.asyncio
    async def test_default_injected(self, auth, service, detector, client_settings) -> None:
        client = Logging(
            auth=auth,
            service=service,
            resource_detector=detector,
            max_retries=3,
            instrumentation=no_instrumentation,
            client_settings=client_settings,
        )
        await client.log("syslog").write("x", WriteOptions(call_options={"timeout": 2}))
        assert sent_call_options(service) == {"timeout": 2, "max_retries": 3}

    @pytest.mark.asyncio
    async def test_caller_value_kept(self, auth, service, detector, client_settings) -> None:
        client = Logging(
            auth=auth,
            service=service,
            resource_detector=detector,
            max_retries=3,
            instrumentation=no_instrumentation,
            client_settings=client_settings,
        )
        await client.log("syslog").write("x", WriteOptions(call_options={"max_retries": 0}))
        assert sent_call_options(service) == {"max_retries": 0}

    @pytest.mark.asyncio
    async def test_no_default(self, log, service) -> None:
        await log.write("x")
        assert sent_call_options(service) == {}


class TestWriteTruncation:
    """写入时截断测试"""

    @pytest.mark.asyncio
    async def test_message_truncated_end_to_end(self, logging_client, service) -> None:
        """超出 40 字节时 message 字段应缩短 40 个字符，其余字段不变"""
        metadata = {"insertId": "fixed", "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        payload = {"message": "m" * 80, "user": "abc"}
        size = serialized_size(Entry(metadata, payload).to_json(project_id=PROJECT_ID))

        log = logging_client.log("syslog", max_entry_size=size - 40)
        await log.write(Entry(metadata, payload))

        fields = sent_request(service)["entries"][0]["jsonPayload"]["fields"]
        assert fields["message"]["stringValue"] == "m" * 40
        assert fields["user"] == {"stringValue": "abc"}

    @pytest.mark.asyncio
    async def test_text_truncated_end_to_end(self, logging_client, service) -> None:
        metadata = {"insertId": "fixed", "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        size = serialized_size(Entry(metadata, "t" * 100).to_json(project_id=PROJECT_ID))

        log = logging_client.log("syslog", max_entry_size=size - 25)
        await log.write(Entry(metadata, "t" * 100))
        assert sent_request(service)["entries"][0]["textPayload"] == "t" * 75

    @pytest.mark.asyncio
    async def test_wide_integer_with_size_limit(self, logging_client, service) -> None:
        """超出 64 位的整数在设置尺寸上限时也应正常写入"""
        log = logging_client.log("syslog", max_entry_size=50)
        await log.write(log.entry({"n": 2**70, "message": "m" * 200}))
        fields = sent_request(service)["entries"][0]["jsonPayload"]["fields"]
        assert fields["n"] == {"numberValue": float(2**70)}
        assert len(fields["message"]["stringValue"]) < 200

    @pytest.mark.asyncio
    async def test_caller_entry_not_truncated(self, logging_client) -> None:
        """截断只作用于序列化副本"""
        entry = Entry({}, {"message": "m" * 200})
        await logging_client.log("syslog", max_entry_size=50).write(entry)
        assert entry.data["message"] == "m" * 200


class TestCallbacks:
    """回调与错误传播测试"""

    @pytest.mark.asyncio
    async def test_returns_response(self, log) -> None:
        assert await log.write("x") == {"ok": True}

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, log, service) -> None:
        service.write_log_entries.side_effect = api_exceptions.InvalidArgument("bad entry")
        with pytest.raises(api_exceptions.InvalidArgument):
            await log.write("x")

    @pytest.mark.asyncio
    async def test_project_id_error_propagates(self, log, auth, service) -> None:
        auth.get_project_id.side_effect = RuntimeError("no credentials")
        with pytest.raises(RuntimeError, match="no credentials"):
            await log.write("x")
        service.write_log_entries.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_per_call_callback(self, log) -> None:
        callback = MagicMock()
        await log.write("x", callback=callback)
        callback.assert_called_once_with(None, {"ok": True})

    @pytest.mark.asyncio
    async def test_default_callback_receives_error(self, logging_client, service) -> None:
        """未传回调时应使用默认回调接收错误"""
        default = MagicMock()
        log = logging_client.log("syslog", default_write_delete_callback=default)
        error = api_exceptions.ServiceUnavailable("down")
        service.write_log_entries.side_effect = error
        assert await log.write("x") is None
        default.assert_called_once_with(error, None)

    @pytest.mark.asyncio
    async def test_per_call_callback_beats_default(self, logging_client) -> None:
        default, per_call = MagicMock(), MagicMock()
        log = logging_client.log("syslog", default_write_delete_callback=default)
        await log.write("x", callback=per_call)
        per_call.assert_called_once()
        default.assert_not_called()


class TestSeverityShortcuts:
    """按严重级别的快捷写入测试"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,severity",
        [
            ("emergency", "EMERGENCY"),
            ("alert", "ALERT"),
            ("critical", "CRITICAL"),
            ("error", "ERROR"),
            ("warning", "WARNING"),
            ("notice", "NOTICE"),
            ("info", "INFO"),
            ("debug", "DEBUG"),
        ],
    )
    async def test_shortcut_sets_severity(self, log, service, method: str, severity: str) -> None:
        await getattr(log, method)([log.entry("a"), "b"])
        entries = sent_request(service)["entries"]
        assert [e["severity"] for e in entries] == [severity, severity]
        assert [e["textPayload"] for e in entries] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_shortcut_passes_options(self, log, service) -> None:
        await log.error("x", WriteOptions(labels={"k": "v"}))
        assert sent_request(service)["labels"] == {"k": "v"}

    @pytest.mark.asyncio
    async def test_shortcut_keeps_http_request_metadata(self, log, service) -> None:
        await log.warning({"httpRequest": {"status": 404}})
        entry = sent_request(service)["entries"][0]
        assert entry["httpRequest"] == {"status": 404}
        assert entry["severity"] == "WARNING"

    def test_static_helpers(self) -> None:
        assert Log.format_name_("p", "n") == "projects/p/logs/n"
        assert Log.assign_severity_to_entries_(Entry({}, "x"), "INFO")[0].metadata["severity"] == "INFO"


class TestDelete:
    """delete 测试"""

    @pytest.mark.asyncio
    async def test_delete_request(self, log, service) -> None:
        await log.delete({"timeout": 3})
        service.delete_log.assert_awaited_once_with({"logName": "projects/proj1/logs/syslog"}, {"timeout": 3})

    @pytest.mark.asyncio
    async def test_delete_default_callback(self, logging_client, service) -> None:
        default = MagicMock()
        log = logging_client.log("syslog", default_write_delete_callback=default)
        await log.delete()
        default.assert_called_once_with(None, {})

    @pytest.mark.asyncio
    async def test_delete_error_propagates(self, log, service) -> None:
        service.delete_log.side_effect = api_exceptions.NotFound("gone")
        with pytest.raises(api_exceptions.NotFound):
            await log.delete()
