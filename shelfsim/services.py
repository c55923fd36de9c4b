"""
Database-aware operations shared by the web app and the CLI.

The routers stay thin: they resolve the current user, call into this module
and shape the HTTP response.  Everything here takes an open ``Session`` and
raises ``ShelfSimError`` subclasses for the web layer to map.
"""

# Import modules
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlmodel import Session, col, func, select

from shelfsim.analysis import RunAnalysis, analyze_run, summarize_simulation
from shelfsim.design import (
    DEFAULT_PRICE_LEVELS,
    calculate_minimum_sample_size,
    calculate_total_combinations,
    cents_to_dollars,
    conjoint_configuration_metrics,
    generate_conjoint_matrix,
    generate_survey_cards,
    priced_option,
    variant_price_points,
)
from shelfsim.engine import split_answers
from shelfsim.errors import (
    AIResponseError,
    InvalidAnswerError,
    InvalidConfigurationError,
    NotFoundError,
    PermissionDeniedError,
)
from shelfsim.logging_config import get_logger
from shelfsim.models import (
    ConjointConfiguration,
    Persona,
    Product,
    ProductImage,
    Question,
    RecordStatus,
    Respondent,
    RespondentType,
    Shelf,
    ShelfPersona,
    ShelfProduct,
    ShelfQuestion,
    ShelfVariant,
    SurveyResponse,
    User,
)
from shelfsim.schemas import (
    ProductImageRead,
    ProductRead,
    Selection,
    ShelfMetrics,
    ShelfProductInfo,
    SurveyDefinition,
    SurveyQuestion,
    VariantPriceRange,
)

logger = get_logger(__name__)

# ------------------------------------------------------------------
# Ownership lookups
# ------------------------------------------------------------------

def get_owned_shelf(session: Session, shelf_id: int, user_id: int) -> Shelf:
    shelf = session.get(Shelf, shelf_id)
    if shelf is None:
        raise NotFoundError("Shelf not found")
    if shelf.created_by != user_id:
        logger.warning("User %s tried to access shelf %s", user_id, shelf_id)
        raise PermissionDeniedError("Unauthorized")
    return shelf


def get_owned_persona(session: Session, persona_id: int, user_id: int) -> Persona:
    persona = session.get(Persona, persona_id)
    if persona is None:
        raise NotFoundError("Persona not found")
    if persona.created_by != user_id:
        logger.warning("User %s tried to access persona %s", user_id, persona_id)
        raise PermissionDeniedError("Unauthorized")
    return persona


def get_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_variant(session: Session, variant_id: int, *, missing: str = "Survey not found") -> ShelfVariant:
    variant = session.get(ShelfVariant, variant_id)
    if variant is None:
        raise NotFoundError(missing)
    return variant


# ------------------------------------------------------------------
# Products
# ------------------------------------------------------------------

def product_images(session: Session, product_id: int) -> list[ProductImage]:
    return list(session.exec(
        select(ProductImage)
        .where(ProductImage.product_id == product_id)
        .order_by(col(ProductImage.ordinal))
    ))


def first_image_urls(session: Session, product_ids: Iterable[int]) -> dict[int, str]:
    """Lowest-ordinal image URL per product."""
    ids = list(product_ids)
    if not ids:
        return {}
    urls: dict[int, str] = {}
    rows = session.exec(
        select(ProductImage)
        .where(col(ProductImage.product_id).in_(ids))
        .order_by(col(ProductImage.ordinal), col(ProductImage.id))
    )
    for image in rows:
        urls.setdefault(image.product_id, image.url)
    return urls


def add_product_image(session: Session, product_id: int, url: str) -> ProductImage:
    """Append an image after the product's current highest ordinal."""
    highest = session.exec(
        select(func.max(ProductImage.ordinal)).where(ProductImage.product_id == product_id)
    ).one()
    image = ProductImage(
        product_id=product_id,
        url=url,
        ordinal=0 if highest is None else highest + 1,
    )
    session.add(image)
    session.commit()
    session.refresh(image)
    logger.info("Added image %s to product %s", image.id, product_id)
    return image


def product_read(session: Session, product: Product) -> ProductRead:
    """API view of a product: prices in dollars, images by ordinal."""
    return ProductRead(
        id=product.id,
        brand_name=product.brand_name,
        product_name=product.product_name,
        description=product.description,
        list_price=cents_to_dollars(product.list_price),
        benefits=product.benefits,
        cost=cents_to_dollars(product.cost),
        low_price=cents_to_dollars(product.low_price),
        high_price=cents_to_dollars(product.high_price),
        price_levels=product.price_levels,
        pack_size=product.pack_size,
        volume_size=product.volume_size,
        new_product=product.new_product,
        status=product.status,
        created_at=product.created_at,
        images=[
            ProductImageRead.model_validate(image)
            for image in product_images(session, product.id)
        ],
    )


def product_info(product: Product, image_url: Optional[str] = None) -> ShelfProductInfo:
    benefits = [b.strip() for b in (product.benefits or "").split(",") if b.strip()]
    return ShelfProductInfo(
        id=product.id,
        brand_name=product.brand_name,
        product_name=product.product_name,
        description=product.description,
        benefits=benefits,
        image_url=image_url,
        list_price=product.list_price,
        low_price=product.low_price,
        high_price=product.high_price,
        price_levels=product.price_levels,
    )


def product_infos(session: Session, product_ids: Sequence[int]) -> list[ShelfProductInfo]:
    """Infos for *product_ids* in the given order; unknown ids are skipped."""
    if not product_ids:
        return []
    products = {
        p.id: p
        for p in session.exec(select(Product).where(col(Product.id).in_(list(product_ids))))
    }
    images = first_image_urls(session, products)
    return [
        product_info(products[pid], images.get(pid))
        for pid in dict.fromkeys(product_ids)
        if pid in products
    ]


# ------------------------------------------------------------------
# Shelf associations and metrics
# ------------------------------------------------------------------

def shelf_products(session: Session, shelf_id: int) -> list[Product]:
    return list(session.exec(
        select(Product)
        .join(ShelfProduct, ShelfProduct.product_id == Product.id)
        .where(ShelfProduct.shelf_id == shelf_id)
        .order_by(col(ShelfProduct.id))
    ))


def shelf_personas(session: Session, shelf_id: int) -> list[Persona]:
    return list(session.exec(
        select(Persona)
        .join(ShelfPersona, ShelfPersona.persona_id == Persona.id)
        .where(ShelfPersona.shelf_id == shelf_id)
        .order_by(col(ShelfPersona.id))
    ))


def shelf_questions(session: Session, shelf_id: int) -> list[Question]:
    return list(session.exec(
        select(Question)
        .join(ShelfQuestion, ShelfQuestion.question_id == Question.id)
        .where(ShelfQuestion.shelf_id == shelf_id)
        .order_by(col(ShelfQuestion.id))
    ))


def replace_shelf_links(
    session: Session,
    shelf_id: int,
    link_model: type[ShelfProduct] | type[ShelfPersona] | type[ShelfQuestion],
    field: str,
    ids: Sequence[int],
) -> list[Any]:
    """Swap the shelf's association rows of one kind for *ids* (duplicates dropped)."""
    for row in session.exec(select(link_model).where(link_model.shelf_id == shelf_id)).all():
        session.delete(row)
    links = [link_model(shelf_id=shelf_id, **{field: item_id}) for item_id in dict.fromkeys(ids)]
    session.add_all(links)
    session.commit()
    for link in links:
        session.refresh(link)
    logger.info("Shelf %s now has %d %s", shelf_id, len(links), link_model.__tablename__)
    return links


def shelf_metrics(session: Session, shelf_id: int) -> ShelfMetrics:
    total = calculate_total_combinations(shelf_products(session, shelf_id))
    return ShelfMetrics(
        total_combinations=total,
        minimum_sample_size=calculate_minimum_sample_size(total),
    )


def affected_shelf_metrics(session: Session, product_id: int) -> list[dict[str, Any]]:
    """Recomputed metrics of every shelf that holds *product_id*."""
    shelf_ids = session.exec(
        select(ShelfProduct.shelf_id)
        .where(ShelfProduct.product_id == product_id)
        .distinct()
        .order_by(ShelfProduct.shelf_id)
    ).all()
    return [
        {"shelf_id": shelf_id, "metrics": shelf_metrics(session, shelf_id).model_dump()}
        for shelf_id in shelf_ids
    ]


# ------------------------------------------------------------------
# Conjoint configuration and variants
# ------------------------------------------------------------------

def latest_configuration(session: Session, shelf_id: int) -> Optional[ConjointConfiguration]:
    return session.exec(
        select(ConjointConfiguration)
        .where(ConjointConfiguration.shelf_id == shelf_id)
        .order_by(col(ConjointConfiguration.created_at).desc(), col(ConjointConfiguration.id).desc())
    ).first()


def shelf_price_levels(session: Session, shelf_id: int) -> int:
    config = latest_configuration(session, shelf_id)
    return config.price_levels if config and config.price_levels else DEFAULT_PRICE_LEVELS


def save_conjoint_configuration(
    session: Session,
    shelf: Shelf,
    price_levels: Any,
    user_id: int,
) -> ConjointConfiguration:
    count, duration = conjoint_configuration_metrics(
        price_levels, len(shelf_products(session, shelf.id))
    )
    config = ConjointConfiguration(
        shelf_id=shelf.id,
        price_levels=price_levels,
        combination_count=count,
        estimated_duration=duration,
        created_by=user_id,
    )
    session.add(config)
    session.commit()
    session.refresh(config)
    logger.info(
        "Saved conjoint configuration for shelf %s: %d levels, %d combinations",
        shelf.id, price_levels, count,
    )
    return config


def create_variant(
    session: Session,
    shelf_id: int,
    lineup: list[dict[str, int]],
    *,
    run_name: Optional[str] = None,
    configuration_id: Optional[int] = None,
    commit: bool = True,
) -> ShelfVariant:
    variant = ShelfVariant(
        shelf_id=shelf_id,
        product_lineup=lineup,
        run_name=run_name,
        configuration_id=configuration_id,
    )
    session.add(variant)
    if commit:
        session.commit()
        session.refresh(variant)
    else:
        session.flush()
    return variant


def list_price_lineup(products: Iterable[Any]) -> list[dict[str, int]]:
    return [{"product_id": p.id, "price": p.list_price} for p in products]


def create_survey_variant(session: Session, shelf: Shelf) -> ShelfVariant:
    """A list-price lineup of the shelf, used as a human survey link."""
    config = latest_configuration(session, shelf.id)
    variant = create_variant(
        session,
        shelf.id,
        list_price_lineup(shelf_products(session, shelf.id)),
        configuration_id=config.id if config else None,
    )
    logger.info("Created survey variant %s for shelf %s", variant.id, shelf.id)
    return variant


def configure_price_variants(
    session: Session,
    shelf: Shelf,
    ranges: Sequence[VariantPriceRange],
) -> list[ShelfVariant]:
    """One single-product variant per price step of each product's range."""
    variants: list[ShelfVariant] = []
    for price_range in ranges:
        product = session.get(Product, price_range.product_id)
        if product is None:
            raise NotFoundError(f"Product {price_range.product_id} not found")
        for price in variant_price_points(
            product.list_price, price_range.min_price_percent, price_range.max_price_percent
        ):
            variants.append(create_variant(
                session,
                shelf.id,
                [{"product_id": product.id, "price": price}],
                commit=False,
            ))
    session.commit()
    for variant in variants:
        session.refresh(variant)
    logger.info("Configured %d price variants for shelf %s", len(variants), shelf.id)
    return variants


# ------------------------------------------------------------------
# Human surveys
# ------------------------------------------------------------------

def _lineup_ids(variant: ShelfVariant) -> list[int]:
    return [int(item["product_id"]) for item in variant.product_lineup]


def load_survey_definition(
    session: Session,
    variant_id: int,
    *,
    seed: Optional[int] = None,
) -> SurveyDefinition:
    """
    Questions and choice cards for a human respondent of *variant_id*.

    Persona screener questions (``demo_<id>``, deduplicated across the
    shelf's personas) come first, then the shelf's own questions.
    """
    variant = get_variant(session, variant_id)
    shelf = session.get(Shelf, variant.shelf_id)

    questions: list[SurveyQuestion] = []
    seen: set[str] = set()
    for persona in shelf_personas(session, variant.shelf_id):
        for q in persona.questions or []:
            qid = f"demo_{q['id']}"
            if qid in seen:
                continue
            seen.add(qid)
            questions.append(SurveyQuestion(
                id=qid,
                question=q["question"],
                type=q["answer_type"],
                options=q.get("options"),
            ))
    for question in shelf_questions(session, variant.shelf_id):
        questions.append(SurveyQuestion(
            id=str(question.id),
            question=question.question,
            type=question.answer_type,
            options=question.options,
        ))

    cards = generate_survey_cards(
        product_infos(session, _lineup_ids(variant)),
        shelf_price_levels(session, variant.shelf_id),
        seed=seed,
    )
    return SurveyDefinition(
        variant_id=variant.id,
        shelf_id=variant.shelf_id,
        project_name=shelf.project_name if shelf else "",
        questions=questions,
        product_combinations=cards,
    )


def record_human_response(
    session: Session,
    variant_id: int,
    raw_answers: Mapping[str, Any],
    selections: Sequence[Selection],
) -> Respondent:
    """
    Store one completed human survey.

    *raw_answers* is keyed by survey question id; screener answers
    (``demo_<id>``) become the respondent's demographics.  Selections
    without a price are recorded at the product's lineup price.
    """
    variant = get_variant(session, variant_id)
    lineup_prices = {int(item["product_id"]): item.get("price") for item in variant.product_lineup}
    for selection in selections:
        if selection.product_id not in lineup_prices:
            raise InvalidAnswerError(
                f"Product {selection.product_id} is not part of survey {variant_id}"
            )

    demographics, answers = split_answers(raw_answers)
    respondent = Respondent(
        type=RespondentType.HUMAN,
        demographics=demographics,
        answers=answers,
    )
    session.add(respondent)
    session.flush()

    for selection in selections:
        price = selection.price if selection.price is not None else lineup_prices[selection.product_id]
        session.add(SurveyResponse(
            respondent_id=respondent.id,
            shelf_variant_id=variant.id,
            selected_product_id=selection.product_id,
            selected_price=price,
        ))
    session.commit()
    session.refresh(respondent)
    logger.info(
        "Recorded human respondent %s with %d selections on variant %s",
        respondent.id, len(selections), variant.id,
    )
    return respondent


# ------------------------------------------------------------------
# Synthetic runs
# ------------------------------------------------------------------

def run_synthetic_survey(
    session: Session,
    shelf: Shelf,
    simulator: Any,
    run_name: str,
    *,
    max_tasks: Optional[int] = None,
    seed: Optional[int] = None,
) -> dict[str, Any]:
    """
    Simulate every shelf persona on every conjoint card.

    Creates a list-price variant tagged with *run_name*, one SYNTHETIC
    respondent per persona and a response per answered card.  Cards the
    model fails to answer are logged and skipped.
    """
    if not run_name:
        raise InvalidConfigurationError("Run name is required")

    products = shelf_products(session, shelf.id)
    if not products:
        raise InvalidConfigurationError("Shelf must have at least one product to run a survey")
    infos = product_infos(session, [p.id for p in products])
    price_levels = shelf_price_levels(session, shelf.id)
    matrix = generate_conjoint_matrix(infos, price_levels, max_tasks=max_tasks, seed=seed)
    logger.info(
        "Starting survey run %r on shelf %s: %d cards, %d price levels",
        run_name, shelf.id, len(matrix), price_levels,
    )

    config = latest_configuration(session, shelf.id)
    variant = create_variant(
        session,
        shelf.id,
        list_price_lineup(products),
        run_name=run_name,
        configuration_id=config.id if config else None,
        commit=False,
    )

    chosen_prices: dict[int, list[int]] = defaultdict(list)
    skipped = 0
    for persona in shelf_personas(session, shelf.id):
        respondent = Respondent(type=RespondentType.SYNTHETIC, persona_id=persona.id)
        session.add(respondent)
        session.flush()

        for card in matrix:
            product_id = simulator.choose_product(persona, card)
            chosen = next((o for o in card if o.product_id == product_id), None)
            if chosen is None:
                skipped += 1
                continue
            session.add(SurveyResponse(
                respondent_id=respondent.id,
                shelf_variant_id=variant.id,
                selected_product_id=chosen.product_id,
                selected_price=chosen.price,
            ))
            chosen_prices[chosen.product_id].append(chosen.price)
        logger.info("Persona %s finished run %r", persona.id, run_name)

    session.commit()
    session.refresh(variant)

    results = summarize_simulation(infos, chosen_prices)
    logger.info(
        "Completed survey run %r (variant %s): %d products, %d cards skipped",
        run_name, variant.id, len(results), skipped,
    )
    return {
        "products": [r.to_dict() for r in results],
        "survey_url": f"/survey/{variant.id}",
        "variant_id": variant.id,
    }


def simulate_persona_variants(
    session: Session,
    persona: Persona,
    shelf_id: int,
    simulator: Any,
) -> list[SurveyResponse]:
    """
    Let *persona* pick a product on every variant of a shelf.

    Any model failure aborts the whole simulation; nothing is stored.
    """
    variants = list(session.exec(
        select(ShelfVariant).where(ShelfVariant.shelf_id == shelf_id).order_by(col(ShelfVariant.id))
    ))
    if not variants:
        raise NotFoundError("No shelf variants found for the given shelf")

    respondent = Respondent(type=RespondentType.SYNTHETIC, persona_id=persona.id)
    session.add(respondent)
    session.flush()

    recorded: list[SurveyResponse] = []
    for variant in variants:
        infos = {info.id: info for info in product_infos(session, _lineup_ids(variant))}
        options = [
            priced_option(infos[int(item["product_id"])], int(item["price"]))
            for item in variant.product_lineup
            if int(item["product_id"]) in infos
        ]
        try:
            product_id = simulator.choose_by_id(persona, options)
        except AIResponseError:
            logger.error("Error simulating choice for variant %s", variant.id)
            session.rollback()
            raise

        price = next(o.price for o in options if o.product_id == product_id)
        response = SurveyResponse(
            respondent_id=respondent.id,
            shelf_variant_id=variant.id,
            selected_product_id=product_id,
            selected_price=price,
        )
        session.add(response)
        recorded.append(response)

    session.commit()
    for response in recorded:
        session.refresh(response)
    logger.info("Persona %s simulated on %d variants of shelf %s", persona.id, len(recorded), shelf_id)
    return recorded


def simulate_persona_preferences(
    session: Session,
    persona_id: int,
    product_ids: Sequence[int],
    simulator: Any,
) -> list[dict[str, Any]]:
    """Which of *product_ids* the persona buys in each of its demand spaces (list prices)."""
    persona = session.get(Persona, persona_id)
    if persona is None:
        raise NotFoundError("Persona not found")

    infos = product_infos(session, product_ids)
    if len(infos) != len(set(product_ids)):
        raise NotFoundError("Some products not found")
    options = [priced_option(info, info.list_price) for info in infos]

    return [
        {
            "demand_space": demand_space,
            "selected_product_id": simulator.choose_for_demand_space(
                persona.demographic_screener, demand_space, options
            ),
        }
        for demand_space in persona.demand_spaces or []
    ]


# ------------------------------------------------------------------
# Runs and analysis
# ------------------------------------------------------------------

def _day_window(moment: datetime) -> tuple[datetime, datetime]:
    start = datetime(moment.year, moment.month, moment.day)
    return start, start + timedelta(days=1)


def list_survey_runs(session: Session) -> list[dict[str, Any]]:
    """
    One entry per (shelf, calendar day), newest first.

    The entry id is the newest variant of that day; analysis of any variant
    id covers the whole day.
    """
    rows = session.exec(
        select(ShelfVariant, Shelf.project_name)
        .join(Shelf, Shelf.id == ShelfVariant.shelf_id)
        .order_by(col(ShelfVariant.created_at).desc(), col(ShelfVariant.id).desc())
    ).all()

    runs: list[dict[str, Any]] = []
    seen: set[tuple[int, Any]] = set()
    for variant, project_name in rows:
        key = (variant.shelf_id, variant.created_at.date())
        if key in seen:
            continue
        seen.add(key)
        runs.append({
            "id": variant.id,
            "shelf_id": variant.shelf_id,
            "project_name": project_name,
            "run_name": variant.run_name,
            "date": variant.created_at,
        })
    return runs


def run_variants(session: Session, variant: ShelfVariant) -> list[ShelfVariant]:
    """All variants of the same shelf created on the same calendar day."""
    start, end = _day_window(variant.created_at)
    return list(session.exec(
        select(ShelfVariant)
        .where(
            ShelfVariant.shelf_id == variant.shelf_id,
            col(ShelfVariant.created_at) >= start,
            col(ShelfVariant.created_at) < end,
        )
        .order_by(col(ShelfVariant.id))
    ))


def compute_run_analysis(session: Session, run_id: int) -> RunAnalysis:
    variant = get_variant(session, run_id, missing="Survey run not found")
    variants = run_variants(session, variant)
    variant_ids = [v.id for v in variants]

    grouped = session.exec(
        select(SurveyResponse.selected_product_id, Respondent.type, func.count())
        .join(Respondent, Respondent.id == SurveyResponse.respondent_id, isouter=True)
        .where(col(SurveyResponse.shelf_variant_id).in_(variant_ids))
        .group_by(SurveyResponse.selected_product_id, Respondent.type)
    ).all()
    counts = [
        (product_id, getattr(kind, "value", kind), int(n))
        for product_id, kind, n in grouped
    ]

    price_counts: dict[int, dict[int, int]] = defaultdict(dict)
    priced = session.exec(
        select(SurveyResponse.selected_product_id, SurveyResponse.selected_price, func.count())
        .where(
            col(SurveyResponse.shelf_variant_id).in_(variant_ids),
            col(SurveyResponse.selected_price).is_not(None),
        )
        .group_by(SurveyResponse.selected_product_id, SurveyResponse.selected_price)
    ).all()
    for product_id, price, n in priced:
        price_counts[product_id][price] = int(n)

    product_ids = sorted({pid for v in variants for pid in _lineup_ids(v)})
    return analyze_run(
        run_id,
        variant.shelf_id,
        product_infos(session, product_ids),
        counts,
        price_counts,
    )


def run_details(session: Session, run_id: int) -> list[dict[str, Any]]:
    """Every response recorded on one variant, with persona and product."""
    variant = get_variant(session, run_id, missing="Survey run not found")
    rows = session.exec(
        select(SurveyResponse, Respondent, Product)
        .join(Respondent, Respondent.id == SurveyResponse.respondent_id)
        .join(Product, Product.id == SurveyResponse.selected_product_id)
        .where(SurveyResponse.shelf_variant_id == variant.id)
        .order_by(col(SurveyResponse.id))
    ).all()

    persona_ids = sorted({r.persona_id for _, r, _ in rows if r.persona_id})
    personas = {
        p.id: p
        for p in session.exec(select(Persona).where(col(Persona.id).in_(persona_ids)))
    }

    details = []
    for response, respondent, product in rows:
        persona = personas.get(respondent.persona_id)
        details.append({
            "id": response.id,
            "timestamp": response.created_at,
            "respondent_type": respondent.type.value,
            "persona": {
                "name": persona.name,
                "demographics": persona.demographics,
                "demand_spaces": persona.demand_spaces,
            } if persona else None,
            "selected_product": {
                "id": product.id,
                "brand_name": product.brand_name,
                "product_name": product.product_name,
            },
            "selected_price": response.selected_price,
            "product_lineup": variant.product_lineup,
        })
    return details


# ------------------------------------------------------------------
# Dashboard and panelists
# ------------------------------------------------------------------

def dashboard_stats(session: Session) -> dict[str, Any]:
    recent = session.exec(
        select(SurveyResponse.created_at)
        .order_by(col(SurveyResponse.created_at).desc(), col(SurveyResponse.id).desc())
        .limit(5)
    ).all()
    return {
        "total_products": session.exec(select(func.count()).select_from(Product)).one(),
        "total_shelves": session.exec(select(func.count()).select_from(Shelf)).one(),
        "total_users": session.exec(select(func.count()).select_from(User)).one(),
        "recent_activity": [
            {"type": "response", "message": "New survey response received", "timestamp": ts}
            for ts in recent
        ],
    }


def list_panelists(session: Session, kind: str, user_id: int) -> list[dict[str, Any]]:
    """Synthetic panelists are the user's personas; human ones are survey respondents."""
    kind = kind.lower()
    if kind == "synthetic":
        personas = session.exec(
            select(Persona)
            .where(Persona.created_by == user_id)
            .order_by(col(Persona.created_at).desc(), col(Persona.id).desc())
        )
        return [
            {"id": p.id, "name": p.name, "type": "SYNTHETIC", "demographics": p.demographics}
            for p in personas
        ]
    if kind == "human":
        respondents = session.exec(
            select(Respondent)
            .where(
                Respondent.type == RespondentType.HUMAN,
                col(Respondent.demographics).is_not(None),
            )
            .order_by(col(Respondent.created_at).desc(), col(Respondent.id).desc())
        )
        return [
            {
                "id": r.id,
                "name": f"Human Panelist {r.id}",
                "type": "HUMAN",
                "demographics": r.demographics,
            }
            for r in respondents
        ]
    raise InvalidConfigurationError("Invalid panelist type")


def active_questions(session: Session) -> list[Question]:
    return list(session.exec(
        select(Question)
        .where(Question.status == RecordStatus.ACTIVE)
        .order_by(col(Question.created_at), col(Question.id))
    ))
