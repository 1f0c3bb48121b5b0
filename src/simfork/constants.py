# Copyright (c) Syntropy Systems
"""Constants shared across simfork."""

GATLING_MAIN_CLASS = "io.gatling.app.Gatling"
COMPILER_MAIN_CLASS = "io.gatling.compiler.ZincCompiler"

# Appended to the user's JVM arguments when defaults are requested
GATLING_JVM_ARGS = (
    "-server",
    "-Xmx1G",
    "-XX:+UseG1GC",
    "-XX:MaxGCPauseMillis=30",
    "-XX:G1HeapRegionSize=16m",
    "-XX:InitiatingHeapOccupancyPercent=75",
    "-XX:+ParallelRefProcEnabled",
    "-XX:+PerfDisableSharedMem",
    "-XX:+OptimizeStringConcat",
    "-XX:+HeapDumpOnOutOfMemoryError",
    "-Djava.net.preferIPv4Stack=true",
    "-Djava.net.preferIPv6Addresses=false",
)

COMPILER_JVM_ARGS = (
    "-Xmx1G",
    "-Xss100M",
    "-XX:+UseG1GC",
)

# Reporting service timing
KEEP_ALIVE_INTERVAL_SECONDS = 15.0
VERDICT_MAX_ATTEMPTS = 12
VERDICT_RETRY_DELAY_SECONDS = 10.0

# Non-zero exit codes of the `simfork run` command
EXIT_ERROR = 1
EXIT_ASSERTIONS_FAILED = 2
EXIT_VERDICT_FAILED = 3

CONFIG_DIR_NAME = ".simfork"
CONFIG_FILE_NAME = "config.yaml"
