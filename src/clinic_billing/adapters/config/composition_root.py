from dependency_injector import containers, providers

container = None

def setup_di_container_from_settings(settings):  # noqa: PLR0915
    """Inicializa o DI container após o Django já estar com settings carregados."""
    global container  # noqa: PLW0603
    if container is not None:
        import structlog
        structlog.get_logger().debug("DI container já inicializado.")
        return container

    # ------- IMPORTS QUE USAM DJANGO MODELS -------
    import structlog

    from clinic_billing.adapters.observability.event_listeners import register_event_listeners
    from clinic_billing.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from clinic_billing.adapters.repositories.clinic_repo_impl import ClinicRepoImpl, ProfessionalRepoImpl
    from clinic_billing.adapters.repositories.invoice_repo_impl import InvoiceRepoImpl
    from clinic_billing.adapters.repositories.patient_repo_impl import PatientRepoImpl
    from clinic_billing.adapters.repositories.recurrence_repo_impl import RecurrenceRepoImpl
    from clinic_billing.adapters.repositories.session_credit_repo_impl import SessionCreditRepoImpl

    # Commands
    from clinic_billing.core.application.commands.appointment_commands import (
        ChangeAppointmentStatusCommand,
        CreateRecurrenceCommand,
        ExtendRecurrencesCommand,
        FinalizeRecurrenceCommand,
        SkipRecurrenceDateCommand,
        UnskipRecurrenceDateCommand,
        UpdateRecurrenceCommand,
    )
    from clinic_billing.core.application.commands.invoice_commands import (
        AddInvoiceItemCommand,
        DeleteInvoiceCommand,
        DeleteInvoiceItemCommand,
        GenerateMonthlyInvoicesCommand,
        SendInvoiceCommand,
        UpdateInvoiceCommand,
        UpdateInvoiceItemCommand,
    )

    # CQRS buses
    from clinic_billing.core.application.cqrs import CommandBusImpl, QueryBusImpl

    # Handlers
    from clinic_billing.core.application.handlers.appointment_handlers import ChangeAppointmentStatusHandler
    from clinic_billing.core.application.handlers.invoice_handlers import (
        AddInvoiceItemHandler,
        DeleteInvoiceHandler,
        DeleteInvoiceItemHandler,
        GenerateMonthlyInvoicesHandler,
        SendInvoiceHandler,
        UpdateInvoiceHandler,
        UpdateInvoiceItemHandler,
    )
    from clinic_billing.core.application.handlers.invoice_query_handlers import (
        GetInvoiceHandler,
        GetRepasseHandler,
        ListInvoicesHandler,
        ListSessionCreditsHandler,
    )
    from clinic_billing.core.application.handlers.recurrence_handlers import (
        CreateRecurrenceHandler,
        ExtendRecurrencesHandler,
        FinalizeRecurrenceHandler,
        SkipRecurrenceDateHandler,
        UnskipRecurrenceDateHandler,
        UpdateRecurrenceHandler,
    )

    # Queries
    from clinic_billing.core.application.queries.invoice_queries import (
        GetInvoiceQuery,
        GetRepasseQuery,
        ListInvoicesQuery,
        ListSessionCreditsQuery,
    )

    # Serviços
    from clinic_billing.core.application.services.credit_ledger import SessionCreditLedger
    from clinic_billing.core.application.services.invoice_generation_service import (
        InvoiceGenerationService,
        InvoiceRecalculationService,
    )
    from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

    # ─────────────────────────────────────────────────────────
    # Construção do container DI
    # ─────────────────────────────────────────────────────────
    container = None

    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        # Infra
        event_dispatcher = providers.Singleton(EventDispatcher)

        # CQRS
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=event_dispatcher)
        query_bus   = providers.Singleton(QueryBusImpl)

        # Implementações de Repositórios
        clinic_repo         = providers.Singleton(ClinicRepoImpl)
        professional_repo   = providers.Singleton(ProfessionalRepoImpl)
        patient_repo        = providers.Singleton(PatientRepoImpl)
        appointment_repo    = providers.Singleton(AppointmentRepoImpl)
        recurrence_repo     = providers.Singleton(RecurrenceRepoImpl)
        credit_repo         = providers.Singleton(SessionCreditRepoImpl)
        invoice_repo        = providers.Singleton(InvoiceRepoImpl)

        # Serviços de negócio
        credit_ledger = providers.Singleton(
            SessionCreditLedger,
            repo=credit_repo,
            dispatcher=event_dispatcher,
        )
        invoice_recalculator = providers.Singleton(
            InvoiceRecalculationService,
            invoice_repo=invoice_repo,
            appointment_repo=appointment_repo,
            patient_repo=patient_repo,
            clinic_repo=clinic_repo,
            professional_repo=professional_repo,
        )
        invoice_generation_service = providers.Singleton(
            InvoiceGenerationService,
            appointment_repo=appointment_repo,
            patient_repo=patient_repo,
            clinic_repo=clinic_repo,
            invoice_repo=invoice_repo,
            credit_repo=credit_repo,
            ledger=credit_ledger,
            recalculator=invoice_recalculator,
            due_day=config.invoice.due_day,
            timeout_ms=config.invoice.regeneration_timeout_ms,
        )

        # Handlers de comandos (faturas)
        generate_invoices_handler   = providers.Factory(GenerateMonthlyInvoicesHandler,
                                                        generation_service=invoice_generation_service)
        update_invoice_handler      = providers.Factory(UpdateInvoiceHandler,      invoice_repo=invoice_repo)
        delete_invoice_handler      = providers.Factory(DeleteInvoiceHandler,      invoice_repo=invoice_repo,
                                                                                   ledger=credit_ledger)
        send_invoice_handler        = providers.Factory(SendInvoiceHandler,        invoice_repo=invoice_repo)
        add_invoice_item_handler    = providers.Factory(AddInvoiceItemHandler,     invoice_repo=invoice_repo,
                                                                                   recalculator=invoice_recalculator)
        update_invoice_item_handler = providers.Factory(UpdateInvoiceItemHandler,  invoice_repo=invoice_repo,
                                                                                   recalculator=invoice_recalculator)
        delete_invoice_item_handler = providers.Factory(DeleteInvoiceItemHandler,  invoice_repo=invoice_repo,
                                                                                   recalculator=invoice_recalculator)

        # Handlers de comandos (agenda)
        change_status_handler = providers.Factory(
            ChangeAppointmentStatusHandler,
            appointment_repo=appointment_repo,
            patient_repo=patient_repo,
            clinic_repo=clinic_repo,
            ledger=credit_ledger,
        )
        create_recurrence_handler   = providers.Factory(CreateRecurrenceHandler,     recurrence_repo=recurrence_repo,
                                                        appointment_repo=appointment_repo, clinic_repo=clinic_repo)
        update_recurrence_handler   = providers.Factory(UpdateRecurrenceHandler,     recurrence_repo=recurrence_repo,
                                                        appointment_repo=appointment_repo, clinic_repo=clinic_repo,
                                                        invoice_repo=invoice_repo, recalculator=invoice_recalculator)
        skip_recurrence_handler     = providers.Factory(SkipRecurrenceDateHandler,   recurrence_repo=recurrence_repo,
                                                        appointment_repo=appointment_repo, clinic_repo=clinic_repo,
                                                        invoice_repo=invoice_repo, recalculator=invoice_recalculator)
        unskip_recurrence_handler   = providers.Factory(UnskipRecurrenceDateHandler, recurrence_repo=recurrence_repo,
                                                        appointment_repo=appointment_repo, clinic_repo=clinic_repo)
        finalize_recurrence_handler = providers.Factory(FinalizeRecurrenceHandler,   recurrence_repo=recurrence_repo,
                                                        appointment_repo=appointment_repo, clinic_repo=clinic_repo)
        extend_recurrences_handler  = providers.Factory(
            ExtendRecurrencesHandler,
            recurrence_repo=recurrence_repo,
            appointment_repo=appointment_repo,
            clinic_repo=clinic_repo,
            professional_repo=professional_repo,
            extension_months=config.recurrence.extension_months,
            horizon_months=config.recurrence.horizon_months,
        )

        # Handlers de queries
        get_invoice_handler   = providers.Factory(GetInvoiceHandler,   invoice_repo=invoice_repo,
                                                  patient_repo=patient_repo, professional_repo=professional_repo)
        list_invoices_handler = providers.Factory(ListInvoicesHandler, invoice_repo=invoice_repo,
                                                  patient_repo=patient_repo, recurrence_repo=recurrence_repo)
        list_credits_handler  = providers.Factory(ListSessionCreditsHandler, credit_repo=credit_repo)
        get_repasse_handler   = providers.Factory(
            GetRepasseHandler,
            invoice_repo=invoice_repo,
            patient_repo=patient_repo,
            clinic_repo=clinic_repo,
            professional_repo=professional_repo,
        )

        def init(self):
            register_event_listeners(self.event_dispatcher())

            # Bus de comandos
            cmd_bus = self.command_bus()

            cmd_bus.register(GenerateMonthlyInvoicesCommand, self.generate_invoices_handler())
            cmd_bus.register(UpdateInvoiceCommand, self.update_invoice_handler())
            cmd_bus.register(DeleteInvoiceCommand, self.delete_invoice_handler())
            cmd_bus.register(SendInvoiceCommand, self.send_invoice_handler())
            cmd_bus.register(AddInvoiceItemCommand, self.add_invoice_item_handler())
            cmd_bus.register(UpdateInvoiceItemCommand, self.update_invoice_item_handler())
            cmd_bus.register(DeleteInvoiceItemCommand, self.delete_invoice_item_handler())

            cmd_bus.register(ChangeAppointmentStatusCommand, self.change_status_handler())
            cmd_bus.register(CreateRecurrenceCommand, self.create_recurrence_handler())
            cmd_bus.register(UpdateRecurrenceCommand, self.update_recurrence_handler())
            cmd_bus.register(SkipRecurrenceDateCommand, self.skip_recurrence_handler())
            cmd_bus.register(UnskipRecurrenceDateCommand, self.unskip_recurrence_handler())
            cmd_bus.register(FinalizeRecurrenceCommand, self.finalize_recurrence_handler())
            cmd_bus.register(ExtendRecurrencesCommand, self.extend_recurrences_handler())

            # Bus de queries
            qry_bus = self.query_bus()

            qry_bus.register(GetInvoiceQuery, self.get_invoice_handler())
            qry_bus.register(ListInvoicesQuery, self.list_invoices_handler())
            qry_bus.register(ListSessionCreditsQuery, self.list_credits_handler())
            qry_bus.register(GetRepasseQuery, self.get_repasse_handler())

    # ------- INSTANCIAÇÃO E CONFIG -------
    container = Container()
    container.config.invoice.due_day.from_value(settings.INVOICE_DUE_DAY)
    container.config.invoice.regeneration_timeout_ms.from_value(settings.INVOICE_REGENERATION_TIMEOUT_MS)
    container.config.recurrence.extension_months.from_value(settings.RECURRENCE_EXTENSION_MONTHS)
    container.config.recurrence.horizon_months.from_value(settings.RECURRENCE_HORIZON_MONTHS)
    Container.init(container)
    structlog.get_logger(__name__).info("DI container inicializado")
    return container
