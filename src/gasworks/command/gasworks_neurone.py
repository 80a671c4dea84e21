# gasworks/command/gasworks_neurone.py

import asyncio
import logging
import sys
from pathlib import Path

import click

from gasworks.common.logger import setup_logging
from gasworks.dendrite.web import serve_web_dendrite
from gasworks.neurone.axon import Axon
from gasworks.neurone.config import AxonConfig, NodeConfig, parse_configuration
from gasworks.neurone.lighting import open_lighting_sink
from gasworks.neurone.metrics import AxonMetrics
from gasworks.neurone.notifier import HttpPeerNotifier

DEFAULT_CONFIG_FILE = "/home/pi/gasworks/neurone/bin/gasworks.json"

logger = logging.getLogger(__name__)


async def run_web_dendrite(axon: Axon, listen_address: str) -> None:
    """
    Serve the web dendrite, logging instead of raising if it dies.

    uvicorn exits the process when it cannot bind, so SystemExit is
    caught here as well; the axon keeps animating without peers.
    """
    try:
        await serve_web_dendrite(axon, listen_address)
    except (OSError, ValueError, SystemExit) as e:
        logger.error(f"Web dendrite stopped | listen_address={listen_address!r} error={e!r}")


async def run_neurone(
    config: NodeConfig,
    timings: AxonConfig = None,
    camera: bool = True,
    logger=None,
) -> None:
    """
    Wire a neurone together and run it until cancelled.

    The axon, the web dendrite and (if enabled) the camera dendrite run
    concurrently on one event loop; the axon alone owns the neurone state.
    """
    metrics = AxonMetrics(config.listen_address)
    sink = await open_lighting_sink()
    notifier = HttpPeerNotifier(metrics=metrics)
    axon = Axon(config, sink=sink, notifier=notifier, timings=timings, metrics=metrics)

    tasks = [asyncio.create_task(axon.run_forever(), name="axon")]
    tasks.append(asyncio.create_task(run_web_dendrite(axon, config.listen_address), name="web-dendrite"))

    camera_dendrite = None
    if camera:
        from gasworks.dendrite.camera import CameraDendrite

        camera_dendrite = CameraDendrite(axon, config)

    try:
        # Let the axon bind to the loop before the camera thread starts pushing.
        await asyncio.sleep(0)
        if camera_dendrite is not None:
            await camera_dendrite.start()
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if camera_dendrite is not None:
            await camera_dendrite.stop()
        await notifier.aclose()
        sink.close()
        if logger:
            logger.info(f"Neurone stopped: {axon.health_check()}")


@click.command(name="gasworks-neurone")
@click.argument(
    'config_file',
    required=False,
    default=DEFAULT_CONFIG_FILE,
    type=click.Path(dir_okay=False),
)
@click.option(
    '--log-config',
    default=None,
    help='Path to a logging configuration file (YAML or JSON).',
    type=click.Path(exists=True, dir_okay=False)
)
@click.option(
    '--log-file',
    default=None,
    help='Also write logs to this file.',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--no-camera',
    is_flag=True,
    help='Run without the camera dendrite.'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging.'
)
def run(config_file, log_config, log_file, no_camera, verbose):
    """
    Starts a Gasworks neurone.

    We have two different kinds of dendrite: one on a webcam, that increases the
    energy of the neurone when motion is detected, and another that listens for
    when other neurones fire. The axon transmits energy to adjacent neurones.
    """
    logger = setup_logging(
        config_file_path=log_config,
        log_file_path=log_file,
        verbose=verbose,
    )
    click.echo("Gasworks neurone")

    config, err = parse_configuration(Path(config_file))
    if err is not None:
        logger.error(f"Configuration error, continuing with defaults: {err}")
    else:
        logger.info(f"Loaded configuration from {config_file}")
    logger.debug(f"Node configuration: {config.to_dict()}")

    try:
        asyncio.run(run_neurone(config, camera=not no_camera, logger=logger))
    except KeyboardInterrupt:
        click.echo("\nStopping neurone.")
        sys.exit(0)


if __name__ == "__main__":
    run()
