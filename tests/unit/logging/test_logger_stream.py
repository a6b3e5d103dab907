import msgspec
import pytest

from castnet.logging import Entry, Logger, LoggingConfig, LogLevel
from castnet.logging.castnet_logging_models import MulticastError, MulticastInfo
from castnet.logging.streams import LoggerStream


def read_lines(path) -> list[dict]:
    with open(path, "rb") as logfile:
        return [msgspec.json.decode(line) for line in logfile.read().splitlines()]


def multicast_error(message: str) -> MulticastError:
    return MulticastError(
        message=message,
        node_host="192.168.1.10",
        node_port=6100,
        multicast_group="239.1.1.1",
        error_type="SendFailure",
    )


class TestEntry:
    def test_to_template(self):
        entry = Entry(message="hello", level=LogLevel.WARN)

        assert entry.to_template("{level} - {message}") == "WARN - hello"

    def test_to_template_with_context(self):
        entry = multicast_error("failed")

        line = entry.to_template(
            "{multicast_group}:{node_port} {message} at {line_number}",
            context={"line_number": 12},
        )

        assert line == "239.1.1.1:6100 failed at 12"


class TestLoggingConfig:
    def test_level_filtering(self):
        config = LoggingConfig()
        config.update(log_level="error")

        assert config.enabled("castnet", LogLevel.ERROR) is True
        assert config.enabled("castnet", LogLevel.FATAL) is True
        assert config.enabled("castnet", LogLevel.INFO) is False

    def test_disable_and_enable(self):
        config = LoggingConfig()
        config.disable("castnet_muted")

        assert config.enabled("castnet_muted", LogLevel.FATAL) is False

        config.enable("castnet_muted")

        assert config.enabled("castnet_muted", LogLevel.FATAL) is True


class TestLoggerFileOutput:
    @pytest.mark.asyncio
    async def test_writes_json_lines(self, tmp_path):
        logger = Logger()
        logger.configure(name="castnet_test", path=str(tmp_path / "castnet_test.json"))

        await logger.log(multicast_error("first"), name="castnet_test")
        await logger.log(multicast_error("second"), name="castnet_test")
        await logger.close()

        lines = read_lines(tmp_path / "castnet_test.json")

        assert [line["entry"]["message"] for line in lines] == ["first", "second"]
        assert lines[0]["entry"]["level"] == "ERROR"
        assert lines[0]["entry"]["multicast_group"] == "239.1.1.1"
        assert lines[0]["function_name"] == "test_writes_json_lines"

    @pytest.mark.asyncio
    async def test_entries_below_level_are_dropped(self, tmp_path):
        logger = Logger()
        logger.configure(name="castnet_filtered", path=str(tmp_path / "filtered.json"))

        await logger.log(
            MulticastInfo(
                message="not written",
                node_host="192.168.1.10",
                node_port=6100,
                multicast_group="239.1.1.1",
            ),
            name="castnet_filtered",
        )
        await logger.log(multicast_error("written"), name="castnet_filtered")
        await logger.close()

        lines = read_lines(tmp_path / "filtered.json")

        assert [line["entry"]["message"] for line in lines] == ["written"]

    @pytest.mark.asyncio
    async def test_rejects_non_json_logfile(self, tmp_path):
        stream = LoggerStream(name="castnet_text")

        with pytest.raises(ValueError):
            await stream.open_file("castnet.txt", directory=str(tmp_path))


class TestLoggerStreamOutput:
    @pytest.mark.asyncio
    async def test_writes_template_to_stdout(self, capsys):
        logger = Logger()
        logger.configure(name="castnet_stdout", template="{level} {message}")

        await logger.log(multicast_error("to stdout"), name="castnet_stdout")
        await logger.close()

        assert "ERROR to stdout" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_log_prepared_uses_named_model(self, tmp_path):
        stream = LoggerStream(
            name="castnet_prepared",
            filename="prepared.json",
            directory=str(tmp_path),
            models={
                "error": (
                    MulticastError,
                    {
                        "node_host": "192.168.1.10",
                        "node_port": 6100,
                        "multicast_group": "239.1.1.1",
                        "error_type": "JoinError",
                    },
                ),
            },
        )

        await stream.log_prepared("join refused", name="error")
        await stream.log_prepared("dropped at default level")
        await stream.close()

        lines = read_lines(tmp_path / "prepared.json")

        assert len(lines) == 1
        assert lines[0]["entry"]["message"] == "join refused"
        assert lines[0]["entry"]["error_type"] == "JoinError"
