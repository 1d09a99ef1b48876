from pathlib import Path
from enum import StrEnum
import logging
import time
import click
from essay_reviewer.config import cfg
from essay_reviewer.model.history_item import HistoryItem
from essay_reviewer.samples import SAMPLE_ESSAY
from essay_reviewer.service.essay_evaluation import (
    AnthropicEssayEvaluator,
    EssayEvaluationError,
    OllamaEssayEvaluator,
    OpenAiEssayEvaluator,
    VertexAiEssayEvaluator,
    validate_essay_text,
)
from essay_reviewer.service.history_repository import HistoryRepository, HistoryResult
from essay_reviewer.service.text_extraction import (
    AnthropicConversion,
    OllamaConversion,
    OpenAiConversion,
    TranscriptionError,
    UnsupportedImageError,
    VertexAiConversion,
)
from essay_reviewer.storage.store_adapter import FileStore
from essay_reviewer.utils.report_export import (
    export_evaluation_text,
    export_history_csv,
    render_evaluation_text,
)


class Model(StrEnum):
    OPENAI = "openai"
    VERTEXAI = "vertexai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


EVALUATORS = {
    Model.OPENAI: OpenAiEssayEvaluator,
    Model.VERTEXAI: VertexAiEssayEvaluator,
    Model.ANTHROPIC: AnthropicEssayEvaluator,
    Model.OLLAMA: OllamaEssayEvaluator,
}

CONVERTERS = {
    Model.OPENAI: OpenAiConversion,
    Model.VERTEXAI: VertexAiConversion,
    Model.ANTHROPIC: AnthropicConversion,
    Model.OLLAMA: OllamaConversion,
}


def _report(result: HistoryResult) -> HistoryResult:
    if result.message:
        click.secho(result.message, fg="yellow", err=True)
    return result


def _repository(ctx: click.Context) -> HistoryRepository:
    repository = ctx.obj["repository"]
    if not ctx.obj.get("loaded"):
        _report(repository.load())
        ctx.obj["loaded"] = True
    return repository


def _require_item(repository: HistoryRepository, item_id: str) -> HistoryItem:
    item = repository.get(item_id)
    if item is None:
        raise click.ClickException(f"Análise {item_id} não encontrada no histórico.")
    return item


@click.group()
@click.option(
    "--history-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Directory where the evaluation history is stored",
)
@click.pass_context
def cli(ctx: click.Context, history_dir: str):
    logging.basicConfig(level=cfg.log_level, format="%(levelname)s %(name)s: %(message)s")
    store = FileStore(Path(history_dir) if history_dir else cfg.history_dir)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("repository", HistoryRepository(store, max_items=cfg.history_max_items))


@cli.command()
@click.option("--text_file", type=click.Path(exists=True, dir_okay=False), help="Text file containing the essay")
@click.option("--image", type=click.Path(exists=True, dir_okay=False), help="Photo of a handwritten essay")
@click.option("--sample", is_flag=True, help="Analyze the bundled sample essay")
@click.option(
    "--model",
    default=Model.ANTHROPIC.value,
    type=click.Choice([m.value for m in Model]),
    help="The model type to be used",
)
@click.option("--name", default=None, help="Name for the history entry")
@click.option("--review", is_flag=True, help="Open the image transcription in an editor before analyzing")
@click.pass_context
def analyze(ctx: click.Context, text_file: str, image: str, sample: bool, model: str, name: str, review: bool):
    """Evaluate an essay and store the result in the history."""
    sources = [s for s in (text_file, image, sample) if s]
    if len(sources) != 1:
        raise click.UsageError("Use exactly one of --text_file, --image or --sample.")

    repository = _repository(ctx)
    start = time.time()
    image_data_url = None
    try:
        if image:
            click.echo("Transcrevendo a imagem da redação...")
            extract = CONVERTERS[Model(model)]().convert_to_text(Path(image))
            essay_text = extract.main_text
            image_data_url = extract.image_data_url
            if review:
                edited = click.edit(essay_text)
                essay_text = edited if edited is not None else essay_text
        elif text_file:
            try:
                essay_text = Path(text_file).read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                raise click.ClickException(
                    "Não foi possível ler o arquivo da redação. Salve o texto com codificação UTF-8 e tente novamente."
                ) from e
        else:
            essay_text = SAMPLE_ESSAY

        essay_text = validate_essay_text(essay_text)
        click.echo("Analisando sua redação...")
        evaluation = EVALUATORS[Model(model)]().evaluate_essay(essay_text)
    except (EssayEvaluationError, TranscriptionError, UnsupportedImageError) as e:
        raise click.ClickException(str(e)) from e

    item = HistoryItem.from_evaluation(
        evaluation, essay_text=essay_text, image_data_url=image_data_url, name=name
    )
    _report(repository.add(item))

    click.echo(render_evaluation_text(evaluation))
    click.echo(f"Salvo no histórico como '{item.name}' ({item.id})")
    click.echo(f"Total elapsed time: {time.time() - start:.2f} seconds")


@cli.command()
@click.option("--search", "query", default="", help="Filter by name, score or keyword")
@click.pass_context
def history(ctx: click.Context, query: str):
    """List past evaluations, most recent first."""
    repository = _repository(ctx)
    if len(repository) == 0:
        click.echo("Nenhuma análise no histórico.")
        return

    items = repository.search(query)
    if not items:
        click.echo("Nenhum resultado encontrado. Tente ajustar seus termos de busca.")
        return
    for item in items:
        click.echo(f"{item.id}\t{item.name}\tNota Final: {item.evaluation.overall_score}\t{item.date}")


@cli.command()
@click.argument("item_id")
@click.option("--with-text", is_flag=True, help="Also print the analyzed essay text")
@click.pass_context
def show(ctx: click.Context, item_id: str, with_text: bool):
    """Print the report of one evaluation."""
    item = _require_item(_repository(ctx), item_id)
    click.echo(f"{item.name} ({item.date})\n")
    if with_text and item.essay_text:
        click.echo(item.essay_text + "\n")
    click.echo(render_evaluation_text(item.evaluation))


@cli.command()
@click.argument("item_id")
@click.argument("new_name")
@click.pass_context
def rename(ctx: click.Context, item_id: str, new_name: str):
    """Rename a history entry."""
    repository = _repository(ctx)
    _require_item(repository, item_id)
    _report(repository.rename(item_id, new_name))
    click.echo(f"Análise renomeada para '{new_name}'.")


@cli.command()
@click.argument("item_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, item_id: str, yes: bool):
    """Delete one history entry."""
    repository = _repository(ctx)
    _require_item(repository, item_id)
    if not yes:
        click.confirm("Tem certeza de que deseja excluir esta análise?", abort=True)
    _report(repository.remove(item_id))
    click.echo("Análise excluída.")


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool):
    """Delete the whole history."""
    repository = _repository(ctx)
    if not yes:
        click.confirm(
            "Tem certeza de que deseja limpar todo o histórico de análises? Esta ação não pode ser desfeita.",
            abort=True,
        )
    _report(repository.clear_all())
    click.echo("Histórico limpo.")


@cli.command()
@click.argument("item_id")
@click.option("--output", "-o", default="analise-redacao.txt", type=click.Path(dir_okay=False), help="Output file")
@click.pass_context
def export(ctx: click.Context, item_id: str, output: str):
    """Save the text report of one evaluation."""
    item = _require_item(_repository(ctx), item_id)
    output_file = export_evaluation_text(item.evaluation, output)
    click.echo(f"Relatório salvo em {output_file}")


@cli.command(name="export-csv")
@click.option("--output", "-o", default="historico-redacoes.csv", type=click.Path(dir_okay=False), help="Output file")
@click.pass_context
def export_csv(ctx: click.Context, output: str):
    """Save the scores of every history entry as CSV."""
    output_file = export_history_csv(_repository(ctx).items, output)
    click.echo(f"Histórico exportado para {output_file}")


@cli.command()
def sample():
    """Print the sample essay."""
    click.echo(SAMPLE_ESSAY)


if __name__ == "__main__":
    cli()
